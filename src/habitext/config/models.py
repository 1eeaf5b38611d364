"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, habitext.toml only contains
overrides. An empty file (or none at all) is a valid configuration.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

# --- habitext.toml sections ---


class DispatchConfig(BaseModel):
    """[dispatch] section."""

    model_config = {"frozen": True}

    hook_timeout: float = Field(default=5.0, gt=0)
    max_workers: int = Field(default=8, ge=1)


class HealthConfig(BaseModel):
    """[health] section."""

    model_config = {"frozen": True}

    timeout: float = Field(default=2.0, gt=0)
    max_workers: int = Field(default=4, ge=1)


class ExtensionsConfig(BaseModel):
    """[extensions] section.

    ``enabled`` is an allow-list of extension names; empty enables all.
    ``config`` maps an extension name to overrides of its configuration.
    """

    model_config = {"frozen": True}

    enabled: list[str] = Field(default_factory=list)
    builtins: bool = True
    local_dir: str | None = None
    config: dict[str, dict[str, Any]] = Field(default_factory=dict)


class StoreConfig(BaseModel):
    """[store] section."""

    model_config = {"frozen": True}

    path: str = ".habitext/habitext.db"

    @field_validator("path")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            msg = "store.path must not be empty"
            raise ValueError(msg)
        return value


class LoggingConfig(BaseModel):
    """[logging] section.

    ``extension_level`` is the lowest level at which events attributed to
    an extension (hook faults, health faults, anything a hook logs) are
    emitted. The default lets the package level decide.
    """

    model_config = {"frozen": True}

    extension_level: Literal["debug", "info", "warning", "error", "critical"] = "debug"
