"""HealthAggregator: per-extension health checks rolled up for monitoring.

Every registered extension is probed concurrently, each probe isolated
and bounded by a timeout. A probe that raises, times out, or answers with
something unrecognizable reports ``unhealthy`` for that extension only.
Extensions without a probe are ``healthy``. The overall status is the
worst status observed.

A probe abandoned at the timeout is not run again until it returns; the
extension reports ``unhealthy`` meanwhile without taking a worker.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Mapping
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Self

import structlog
from pydantic import BaseModel, Field

from habitext.extensions.errors import HealthCheckError
from habitext.extensions.locks import AbandonedCalls

if TYPE_CHECKING:
    from habitext.extensions.descriptor import ExtensionDescriptor
    from habitext.extensions.registry import ExtensionRegistry

log = structlog.get_logger(__name__)

DEFAULT_HEALTH_TIMEOUT = 2.0


class HealthStatus(StrEnum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {HealthStatus.HEALTHY: 0, HealthStatus.DEGRADED: 1, HealthStatus.UNHEALTHY: 2}


class ExtensionHealth(BaseModel):
    """Health of one extension at ``checked_at``."""

    model_config = {"frozen": True}

    status: HealthStatus
    error: str | None = None
    checked_at: str

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": str(self.status), "checked_at": self.checked_at}
        if self.error is not None:
            data["error"] = self.error
        return data


class HealthReport(BaseModel):
    """Aggregated result of :meth:`HealthAggregator.check_all`."""

    model_config = {"frozen": True}

    overall: HealthStatus
    extensions: dict[str, ExtensionHealth] = Field(default_factory=dict)

    @property
    def unhealthy(self) -> list[str]:
        return [n for n, h in self.extensions.items() if h.status is HealthStatus.UNHEALTHY]

    def to_dict(self) -> dict[str, Any]:
        """The health endpoint payload."""
        return {
            "overall": str(self.overall),
            "extensions": {name: h.to_dict() for name, h in self.extensions.items()},
        }


class HealthAggregator:
    """Runs every extension's health check and aggregates the statuses."""

    def __init__(
        self,
        registry: ExtensionRegistry,
        *,
        timeout: float = DEFAULT_HEALTH_TIMEOUT,
        max_workers: int = 4,
    ) -> None:
        self._registry = registry
        self._timeout = timeout
        self._abandoned = AbandonedCalls()
        self._executor: ThreadPoolExecutor | None = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="habitext-health"
        )

    def check_all(self) -> HealthReport:
        if self._executor is None:
            msg = "HealthAggregator has been shut down"
            raise RuntimeError(msg)

        descriptors = list(self._registry)
        futures: dict[str, Future[ExtensionHealth]] = {
            d.name: self._executor.submit(self._probe, d)
            for d in descriptors
            if not self._abandoned.busy(d.name)
        }
        done, _ = wait(futures.values(), timeout=self._timeout)

        results: dict[str, ExtensionHealth] = {}
        for d in descriptors:
            name = d.name
            future = futures.get(name)
            if future is None:
                error = HealthCheckError(
                    "Previous health check has not returned yet", extension=name
                )
                results[name] = _unhealthy(name, error)
                continue
            if future in done:
                results[name] = future.result()
                continue
            if not future.cancel():
                self._abandoned.abandon(name, future)
            error = HealthCheckError(
                f"Health check did not finish within {self._timeout}s", extension=name
            )
            results[name] = _unhealthy(name, error)

        overall = max(
            (h.status for h in results.values()),
            key=lambda s: s.severity,
            default=HealthStatus.HEALTHY,
        )
        return HealthReport(overall=overall, extensions=results)

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def _probe(self, descriptor: ExtensionDescriptor) -> ExtensionHealth:
        """Run one health check in an isolation boundary. Never raises."""
        if descriptor.health_check is None:
            return ExtensionHealth(status=HealthStatus.HEALTHY, checked_at=_now_iso())
        try:
            with structlog.contextvars.bound_contextvars(extension=descriptor.name):
                raw = descriptor.health_check()
                if inspect.isawaitable(raw):
                    raw = asyncio.run(_await_with_deadline(raw, self._timeout))
            return _interpret(descriptor.name, raw)
        except Exception as exc:
            if isinstance(exc, TimeoutError):
                exc = HealthCheckError(
                    f"Health check did not finish within {self._timeout}s",
                    extension=descriptor.name,
                )
            return _unhealthy(descriptor.name, exc)


async def _await_with_deadline(awaitable: Any, timeout: float) -> Any:
    return await asyncio.wait_for(awaitable, timeout=timeout)


def _interpret(extension: str, raw: object) -> ExtensionHealth:
    """Map a probe's answer to an ExtensionHealth.

    Accepted answers: ``None`` (healthy), a bool, a status string, or a
    mapping with a ``status`` key and an optional ``error``.
    """
    if raw is None:
        return ExtensionHealth(status=HealthStatus.HEALTHY, checked_at=_now_iso())
    if isinstance(raw, bool):
        if raw:
            return ExtensionHealth(status=HealthStatus.HEALTHY, checked_at=_now_iso())
        return _unhealthy(extension, HealthCheckError("Health check returned False"))

    error: str | None = None
    if isinstance(raw, Mapping):
        status_value = raw.get("status")
        if raw.get("error") is not None:
            error = str(raw["error"])
    else:
        status_value = raw

    try:
        status = HealthStatus(status_value)
    except (TypeError, ValueError):
        msg = f"Unrecognized health status: {status_value!r}"
        return _unhealthy(extension, HealthCheckError(msg, extension=extension))

    if status is not HealthStatus.HEALTHY:
        log.warning("extension.health", extension=extension, status=str(status), error=error)
    return ExtensionHealth(status=status, error=error, checked_at=_now_iso())


def _unhealthy(extension: str, error: BaseException) -> ExtensionHealth:
    message = str(error) or type(error).__name__
    log.warning(
        "extension.health_check_failed",
        extension=extension,
        error=message,
        error_type=type(error).__name__,
    )
    return ExtensionHealth(status=HealthStatus.UNHEALTHY, error=message, checked_at=_now_iso())


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()
