"""ExtensionService: read-side queries over the registered extensions.

Listing, statistics, per-habit UI actions and analytics, named endpoint
calls, and the health rollup. Actions and endpoints are extension code,
so every call is isolated: one misbehaving extension becomes a warning
and the others still answer.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import structlog

from habitext.extensions.health import HealthStatus
from habitext.services.result import ServiceError, ServiceResult

if TYPE_CHECKING:
    from habitext.domain.habits import CompletionEntry, Habit
    from habitext.extensions.descriptor import ExtensionDescriptor
    from habitext.extensions.health import HealthAggregator
    from habitext.extensions.registry import ExtensionRegistry

logger = logging.getLogger(__name__)
log = structlog.get_logger(__name__)

ACTION_BUTTONS = "get_action_buttons"
ACTION_ANALYTICS = "get_analytics"


class ExtensionService:
    """Queries against the registry and the health aggregator."""

    def __init__(self, registry: ExtensionRegistry, health: HealthAggregator) -> None:
        self._registry = registry
        self._health = health

    # ------------------------------------------------------------------
    # Registry queries
    # ------------------------------------------------------------------

    def list_extensions(self, habit_type: str | None = None) -> ServiceResult:
        """Summaries of registered extensions, optionally those applicable to one type."""
        descriptors = (
            self._registry.resolve(habit_type) if habit_type else list(self._registry)
        )
        items = [d.summary() for d in descriptors]
        return ServiceResult(
            ok=True,
            op="list_extensions",
            data={"count": len(items), "items": items},
        )

    def get_extension(self, name: str) -> ServiceResult:
        descriptor = self._registry.get(name)
        if descriptor is None:
            return _not_found("get_extension", name)
        return ServiceResult(ok=True, op="get_extension", data=descriptor.summary())

    def stats(self) -> ServiceResult:
        return ServiceResult(ok=True, op="extension_stats", data=self._registry.stats())

    # ------------------------------------------------------------------
    # Per-habit actions and analytics
    # ------------------------------------------------------------------

    def habit_actions(self, habit: Habit) -> ServiceResult:
        """UI actions offered by every extension applicable to *habit*.

        Each action is tagged with the ``extension`` that offered it.
        """
        op = "habit_actions"
        actions: list[dict[str, Any]] = []
        warnings: list[str] = []

        for descriptor in self._with_action(habit, ACTION_BUTTONS):
            try:
                offered = _call(descriptor.actions[ACTION_BUTTONS], habit)
                for action in offered or []:
                    actions.append({**action, "extension": descriptor.name})
            except Exception as exc:
                warnings.append(_action_failed(op, descriptor.name, exc))

        return ServiceResult(
            ok=True,
            op=op,
            data={"habit_id": habit.id, "actions": actions},
            warnings=warnings,
        )

    def habit_analytics(
        self, habit: Habit, entries: Iterable[CompletionEntry] = ()
    ) -> ServiceResult:
        """Analytics from every applicable extension, keyed by extension name."""
        op = "habit_analytics"
        history = list(entries)
        analytics: dict[str, Any] = {}
        warnings: list[str] = []

        for descriptor in self._with_action(habit, ACTION_ANALYTICS):
            try:
                analytics[descriptor.name] = _call(
                    descriptor.actions[ACTION_ANALYTICS], habit, history
                )
            except Exception as exc:
                warnings.append(_action_failed(op, descriptor.name, exc))

        return ServiceResult(
            ok=True,
            op=op,
            data={"habit_id": habit.id, "analytics": analytics},
            warnings=warnings,
        )

    def call_endpoint(self, name: str, endpoint: str, *args: Any, **kwargs: Any) -> ServiceResult:
        """Invoke one extension's named endpoint."""
        op = "call_endpoint"
        descriptor = self._registry.get(name)
        if descriptor is None:
            return _not_found(op, name)
        handler = descriptor.endpoints.get(endpoint)
        if handler is None:
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code="NO_ENDPOINT",
                    message=f"Extension {name} has no endpoint {endpoint!r}",
                    detail={"available": sorted(descriptor.endpoints)},
                ),
            )
        try:
            value = _call(handler, *args, **kwargs)
        except Exception as exc:
            logger.warning("Endpoint %s.%s failed", name, endpoint, exc_info=True)
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code="ENDPOINT_FAILED",
                    message=str(exc) or type(exc).__name__,
                    detail={"extension": name, "endpoint": endpoint},
                ),
            )
        return ServiceResult(
            ok=True,
            op=op,
            data={"extension": name, "endpoint": endpoint, "result": value},
        )

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def health(self) -> ServiceResult:
        """Aggregated health. Fails only when the overall status is unhealthy."""
        report = self._health.check_all()
        data = report.to_dict()
        if report.overall is HealthStatus.UNHEALTHY:
            return ServiceResult(
                ok=False,
                op="health",
                data=data,
                error=ServiceError(
                    code="UNHEALTHY",
                    message=f"Unhealthy extensions: {', '.join(report.unhealthy)}",
                    detail=data,
                ),
            )
        warnings = [
            f"Extension {name} is {h.status}"
            for name, h in report.extensions.items()
            if h.status is HealthStatus.DEGRADED
        ]
        return ServiceResult(ok=True, op="health", data=data, warnings=warnings)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _with_action(self, habit: Habit, action: str) -> list[ExtensionDescriptor]:
        return [d for d in self._registry.resolve(habit.type) if action in d.actions]


def _call(fn: Any, *args: Any, **kwargs: Any) -> Any:
    value = fn(*args, **kwargs)
    if inspect.isawaitable(value):
        value = asyncio.run(_await(value))
    return value


async def _await(awaitable: Any) -> Any:
    return await awaitable


def _action_failed(op: str, extension: str, error: BaseException) -> str:
    message = str(error) or type(error).__name__
    log.warning(
        "extension.action_failed",
        op=op,
        extension=extension,
        error=message,
        error_type=type(error).__name__,
    )
    return f"Extension {extension} failed on {op}: {message}"


def _not_found(op: str, name: str) -> ServiceResult:
    return ServiceResult(
        ok=False,
        op=op,
        error=ServiceError(code="NOT_FOUND", message=f"No extension registered as {name!r}"),
    )
