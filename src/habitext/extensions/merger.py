"""IntegrationMerger: collected hook results to one persistence instruction.

Each dispatch yields at most one :class:`WriteSet` for one habit. The
store applies a WriteSet in a single transaction, so either every write
from a dispatch lands or none does.

Namespace rule: an extension may only write under
``integrations.<its own name>``. A path that escapes the namespace is a
MergeError for that extension alone; its writes are dropped and its
siblings' writes still apply.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, Field

from habitext.domain.results import NoUpdate, Patch, Seed
from habitext.extensions.builder import INTEGRATIONS_ROOT
from habitext.extensions.errors import MergeError

logger = logging.getLogger(__name__)


class FieldSet(BaseModel):
    """Set ``value`` at dotted ``path`` (always under ``integrations.<extension>``)."""

    model_config = {"frozen": True}

    extension: str
    path: str
    value: Any = None


class WriteSet(BaseModel):
    """All writes produced by one dispatch for one habit, in order."""

    model_config = {"frozen": True}

    entity_id: str
    writes: list[FieldSet] = Field(default_factory=list)
    rejected: dict[str, str] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.writes

    @property
    def extensions(self) -> list[str]:
        """Extensions with at least one write, first-write order."""
        return list(dict.fromkeys(w.extension for w in self.writes))


class IntegrationMerger:
    """Turns ``(extension_name, HookResult)`` pairs into a WriteSet."""

    def merge(
        self,
        entity_id: str,
        results: Iterable[tuple[str, Seed | Patch | NoUpdate]],
    ) -> WriteSet:
        writes: list[FieldSet] = []
        rejected: dict[str, str] = {}

        for extension, result in results:
            try:
                writes.extend(_field_sets(extension, result))
            except MergeError as exc:
                logger.warning(
                    "Rejected writes from extension %s on %s: %s",
                    extension,
                    entity_id,
                    exc,
                )
                rejected[extension] = str(exc)

        return WriteSet(entity_id=entity_id, writes=writes, rejected=rejected)


def _field_sets(extension: str, result: Seed | Patch | NoUpdate) -> list[FieldSet]:
    namespace = f"{INTEGRATIONS_ROOT}.{extension}"
    if isinstance(result, Seed):
        return [FieldSet(extension=extension, path=namespace, value=result.blob)]
    if isinstance(result, Patch):
        return [
            FieldSet(extension=extension, path=anchor_path(extension, path), value=value)
            for path, value in result.values.items()
        ]
    if isinstance(result, NoUpdate):
        return []
    msg = f"Unsupported hook result type: {type(result).__name__}"
    raise MergeError(msg, extension=extension)


def anchor_path(extension: str, path: str) -> str:
    """Anchor *path* under the extension's namespace.

    Fully qualified paths are kept; relative paths are prefixed with the
    namespace. Paths into another namespace, or the bare integrations
    root, raise MergeError.

    Examples:
        >>> anchor_path("counter", "integrations.counter.count")
        'integrations.counter.count'
        >>> anchor_path("counter", "count")
        'integrations.counter.count'
    """
    namespace = f"{INTEGRATIONS_ROOT}.{extension}"
    parts = path.split(".")
    if not path or any(not part for part in parts):
        msg = f"Invalid path {path!r}"
        raise MergeError(msg, extension=extension)

    if parts[0] != INTEGRATIONS_ROOT:
        return f"{namespace}.{path}"
    if path == namespace or path.startswith(namespace + "."):
        return path
    msg = f"Path {path!r} is outside namespace {namespace!r}"
    raise MergeError(msg, extension=extension)


def apply_write_set(integrations: Mapping[str, Any], write_set: WriteSet) -> dict[str, Any]:
    """Return a copy of *integrations* with every write in *write_set* applied.

    Intermediate objects along a path are created when missing and
    replaced when they are not mappings. Writes apply in order, so a later
    write at the same path wins.
    """
    updated: dict[str, Any] = copy.deepcopy(dict(integrations))
    for write in write_set.writes:
        parts = write.path.split(".")[1:]  # drop the "integrations" root
        target = updated
        for part in parts[:-1]:
            child = target.get(part)
            if not isinstance(child, dict):
                child = {}
                target[part] = child
            target = child
        target[parts[-1]] = copy.deepcopy(write.value)
    return updated
