"""Tests for ExtensionRegistry: validation, duplicates, resolution order."""

from __future__ import annotations

import pytest

from habitext.domain.events import EventKind
from habitext.extensions.descriptor import ExtensionDescriptor
from habitext.extensions.errors import DuplicateExtensionError, RegistrationError
from habitext.extensions.registry import ExtensionRegistry


def _noop(event: object) -> None:
    return None


class TestRegister:
    def test_size_counts_unique_names(self, registry: ExtensionRegistry) -> None:
        for name in ("a", "b", "c"):
            registry.register(ExtensionDescriptor(name=name))
        with pytest.raises(DuplicateExtensionError):
            registry.register(ExtensionDescriptor(name="b"))
        assert len(registry) == 3
        assert registry.names() == ["a", "b", "c"]

    def test_duplicate_keeps_original(self, registry: ExtensionRegistry) -> None:
        first = ExtensionDescriptor(name="dup", version="1.0.0")
        registry.register(first)
        with pytest.raises(DuplicateExtensionError) as exc_info:
            registry.register(ExtensionDescriptor(name="dup", version="2.0.0"))
        assert exc_info.value.extension == "dup"
        assert registry.get("dup") is first

    def test_duplicate_is_registration_error(self) -> None:
        assert issubclass(DuplicateExtensionError, RegistrationError)

    @pytest.mark.parametrize("name", ["", "   "])
    def test_empty_name_rejected(self, registry: ExtensionRegistry, name: str) -> None:
        with pytest.raises(RegistrationError):
            registry.register(ExtensionDescriptor(name=name))
        assert len(registry) == 0

    def test_dotted_name_rejected(self, registry: ExtensionRegistry) -> None:
        with pytest.raises(RegistrationError, match="must not contain"):
            registry.register(ExtensionDescriptor(name="a.b"))

    def test_unknown_hook_kind_rejected(self, registry: ExtensionRegistry) -> None:
        descriptor = ExtensionDescriptor(name="x", hooks={"archived": _noop})
        with pytest.raises(RegistrationError, match="archived"):
            registry.register(descriptor)
        assert "x" not in registry

    def test_string_hook_keys_accepted(self, registry: ExtensionRegistry) -> None:
        descriptor = ExtensionDescriptor(name="x", hooks={"completed": _noop})
        registry.register(descriptor)
        assert descriptor.hook_for(EventKind.COMPLETED) is _noop

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"hooks": {EventKind.CREATED: "not callable"}},
            {"endpoints": {"get": 42}},
            {"actions": {"get_action_buttons": None}},
            {"health_check": "healthy"},
        ],
    )
    def test_non_callables_rejected(self, registry: ExtensionRegistry, kwargs: dict) -> None:
        with pytest.raises(RegistrationError):
            registry.register(ExtensionDescriptor(name="bad", **kwargs))
        assert len(registry) == 0


class TestResolve:
    def test_type_scoping(self, registry: ExtensionRegistry) -> None:
        registry.register(ExtensionDescriptor(name="counter", supported_types=frozenset({"count"})))
        registry.register(ExtensionDescriptor(name="everything"))
        registry.register(ExtensionDescriptor(name="timer", supported_types=frozenset({"time"})))

        assert [d.name for d in registry.resolve("simple")] == ["everything"]
        assert [d.name for d in registry.resolve("count")] == ["counter", "everything"]
        assert [d.name for d in registry.resolve("time")] == ["everything", "timer"]

    def test_empty_types_default_to_all(self, registry: ExtensionRegistry) -> None:
        descriptor = ExtensionDescriptor(name="any", supported_types=frozenset())
        registry.register(descriptor)
        assert descriptor.supported_types == frozenset({"all"})
        assert registry.resolve("weight") == [descriptor]

    def test_unknown_type_with_scoped_extensions(self, registry: ExtensionRegistry) -> None:
        registry.register(ExtensionDescriptor(name="counter", supported_types=frozenset({"count"})))
        assert registry.resolve("unknown") == []


class TestLookup:
    def test_get_missing(self, registry: ExtensionRegistry) -> None:
        assert registry.get("nope") is None

    def test_iteration_and_membership(self, registry: ExtensionRegistry) -> None:
        registry.register(ExtensionDescriptor(name="a"))
        registry.register(ExtensionDescriptor(name="b"))
        assert [d.name for d in registry] == ["a", "b"]
        assert "a" in registry
        assert "z" not in registry

    def test_stats(self, registry: ExtensionRegistry) -> None:
        registry.register(ExtensionDescriptor(name="a"))
        registry.register(
            ExtensionDescriptor(name="b", supported_types=frozenset({"count", "time"}))
        )
        registry.register(ExtensionDescriptor(name="c", supported_types=frozenset({"count"})))
        assert registry.stats() == {"total": 3, "by_type": {"all": 1, "count": 2, "time": 1}}

    def test_descriptor_mappings_are_read_only(self, registry: ExtensionRegistry) -> None:
        descriptor = ExtensionDescriptor(name="a", config={"k": 1})
        registry.register(descriptor)
        with pytest.raises(TypeError):
            descriptor.config["k"] = 2  # type: ignore[index]
