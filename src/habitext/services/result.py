"""ServiceResult and ServiceError: the contract between services and callers.

INVARIANT: All service-layer methods return ServiceResult. Extension
faults show up in ``warnings``; ``ok`` is False only when the requested
operation itself could not be performed.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Return type for all service operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"habit_completed"``).
        data: Operation-specific payload.
        warnings: Non-fatal issues, one per failed, timed-out or rejected extension.
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (timing, counts).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None
