"""EventDispatcher: lifecycle fan-out to extension hooks, fan-in to one WriteSet.

Dispatch is synchronous relative to the caller: the owning service needs
the merged result before it can persist and respond. Inside one dispatch
the candidate hooks run concurrently on a ThreadPoolExecutor, each call
isolated so that a raising, misbehaving, or slow hook degrades to
"no update" for that extension only.

Deadline: every dispatch waits at most ``hook_timeout`` seconds for its
hooks. Hooks still running at the deadline are abandoned (their result is
discarded when they finish); coroutine hooks are cancelled by
``asyncio.wait_for`` on their worker. Queued calls are cancelled. Until an
abandoned call returns, its extension is reported as timed out without
being invoked again, so one hung hook holds at most one worker.

Each hook runs with ``habit_id``, ``event_kind`` and ``extension`` bound
in the structlog context, so anything it logs is attributed.

Ordering: dispatches for the same habit id are serialized through a
:class:`KeyedLock`; dispatches for different habits are independent.

INVARIANT: Extension failures are logged and reported, never raised.
"""

from __future__ import annotations

import asyncio
import contextvars
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Self

import structlog
from pydantic import BaseModel, Field

from habitext.domain.results import NO_UPDATE, NoUpdate, Patch, Seed, is_update
from habitext.extensions.errors import HookExecutionError, HookTimeoutError
from habitext.extensions.locks import AbandonedCalls, KeyedLock
from habitext.extensions.merger import IntegrationMerger, WriteSet

if TYPE_CHECKING:
    from habitext.domain.events import HabitCompleted, HabitCreated, HabitDeleted, HabitUpdated
    from habitext.extensions.descriptor import ExtensionDescriptor
    from habitext.extensions.registry import ExtensionRegistry

    Event = HabitCreated | HabitCompleted | HabitUpdated | HabitDeleted

logger = logging.getLogger(__name__)
log = structlog.get_logger(__name__)

DEFAULT_HOOK_TIMEOUT = 5.0
DEFAULT_MAX_WORKERS = 8


class MergeResult(BaseModel):
    """Outcome of one dispatch.

    Attributes:
        event_kind: The dispatched lifecycle event kind.
        entity_id: The habit the event concerns.
        write_set: Merged writes, in registration order.
        invoked: Extensions whose hook ran to completion (with or without update).
        failed: Extension name -> error text for hooks that raised or
            returned an invalid result.
        timed_out: Extensions abandoned at the deadline, or not invoked
            because an earlier abandoned call is still running.
        skipped: Applicable extensions without a hook for this event kind.
        persist_error: Set when applying ``write_set`` failed.
        duration_ms: Wall time of the fan-out.
    """

    model_config = {"frozen": True}

    event_kind: str
    entity_id: str
    write_set: WriteSet
    invoked: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)
    timed_out: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    persist_error: str | None = None
    duration_ms: float = 0.0

    @property
    def updated(self) -> list[str]:
        return self.write_set.extensions

    def warnings(self) -> list[str]:
        """Human-readable messages for every extension fault in this dispatch."""
        messages = [
            f"Extension {n} failed on {self.event_kind}: {e}" for n, e in self.failed.items()
        ]
        messages += [f"Extension {n} timed out on {self.event_kind}" for n in self.timed_out]
        messages += [
            f"Extension {n} write rejected: {e}" for n, e in self.write_set.rejected.items()
        ]
        if self.persist_error:
            messages.append(f"Integration writes not persisted: {self.persist_error}")
        return messages


@dataclass(frozen=True)
class _Outcome:
    result: NoUpdate | Seed | Patch = NO_UPDATE
    error: str | None = None


class EventDispatcher:
    """Resolves, invokes, and merges extension hooks for lifecycle events.

    Parameters:
        registry: Populated ExtensionRegistry.
        merger: Merger for collected results (default IntegrationMerger).
        hook_timeout: Deadline in seconds for the hooks of one dispatch.
        max_workers: ThreadPoolExecutor worker count.
        locks: Shared per-habit lock table (one is created when omitted).
    """

    def __init__(
        self,
        registry: ExtensionRegistry,
        *,
        merger: IntegrationMerger | None = None,
        hook_timeout: float = DEFAULT_HOOK_TIMEOUT,
        max_workers: int = DEFAULT_MAX_WORKERS,
        locks: KeyedLock | None = None,
    ) -> None:
        self._registry = registry
        self._merger = merger or IntegrationMerger()
        self._hook_timeout = hook_timeout
        self._locks = locks or KeyedLock()
        self._abandoned = AbandonedCalls()
        self._executor: ThreadPoolExecutor | None = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="habitext-hook"
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def registry(self) -> ExtensionRegistry:
        return self._registry

    @property
    def hook_timeout(self) -> float:
        return self._hook_timeout

    def entity_lock(self, entity_id: str) -> AbstractContextManager[None]:
        """Hold the per-habit lock (re-entrant) for a read-dispatch-persist cycle."""
        return self._locks.hold(entity_id)

    def dispatch(
        self,
        event: Event,
        *,
        persist: Callable[[WriteSet], Any] | None = None,
    ) -> MergeResult:
        """Run every applicable hook for *event* and merge the results.

        When *persist* is given it is called with a non-empty WriteSet while
        the habit's lock is still held. A persistence failure is recorded on
        the result, not raised.
        """
        with self._locks.hold(event.habit.id):
            result = self._fan_out(event)
            if persist is None or result.write_set.is_empty:
                return result
            try:
                persist(result.write_set)
            except Exception as exc:
                logger.warning(
                    "Persisting integrations for %s failed", event.habit.id, exc_info=True
                )
                return result.model_copy(update={"persist_error": str(exc)})
            return result

    def shutdown(self) -> None:
        """Release worker threads. Abandoned hooks are not waited for."""
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _fan_out(self, event: Event) -> MergeResult:
        if self._executor is None:
            msg = "EventDispatcher has been shut down"
            raise RuntimeError(msg)

        kind = event.kind
        entity_id = event.habit.id
        resolved = self._registry.resolve(event.habit.type)
        candidates = [d for d in resolved if d.hook_for(kind) is not None]
        skipped = [d.name for d in resolved if d.hook_for(kind) is None]

        started = time.perf_counter()
        with structlog.contextvars.bound_contextvars(habit_id=entity_id, event_kind=str(kind)):
            futures: dict[str, Future[_Outcome]] = {}
            for d in candidates:
                if self._abandoned.busy(d.name):
                    continue
                context = contextvars.copy_context()
                futures[d.name] = self._executor.submit(context.run, self._invoke, d, event)
            done, _ = wait(futures.values(), timeout=self._hook_timeout)

            collected: list[tuple[str, Seed | Patch | NoUpdate]] = []
            invoked: list[str] = []
            failed: dict[str, str] = {}
            timed_out: list[str] = []

            for d in candidates:
                name = d.name
                future = futures.get(name)
                if future is None:
                    error = HookTimeoutError(
                        "Previous call has not returned yet; not invoked", extension=name
                    )
                    _log_hook_failure(name, kind, error)
                    timed_out.append(name)
                    continue
                if future not in done:
                    if not future.cancel():
                        self._abandoned.abandon(name, future)
                    error = HookTimeoutError(
                        f"Hook did not finish within {self._hook_timeout}s", extension=name
                    )
                    _log_hook_failure(name, kind, error)
                    timed_out.append(name)
                    continue
                outcome = future.result()
                if outcome.error is not None:
                    failed[name] = outcome.error
                    continue
                invoked.append(name)
                if is_update(outcome.result):
                    collected.append((name, outcome.result))

        write_set = self._merger.merge(entity_id, collected)
        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.debug(
            "Dispatched %s for %s to %d extension(s) in %.2fms",
            kind,
            entity_id,
            len(candidates),
            duration_ms,
        )
        return MergeResult(
            event_kind=str(kind),
            entity_id=entity_id,
            write_set=write_set,
            invoked=invoked,
            failed=failed,
            timed_out=timed_out,
            skipped=skipped,
            duration_ms=duration_ms,
        )

    def _invoke(self, descriptor: ExtensionDescriptor, event: Event) -> _Outcome:
        """Call one hook inside an isolation boundary. Never raises."""
        hook = descriptor.hook_for(event.kind)
        assert hook is not None
        structlog.contextvars.bind_contextvars(extension=descriptor.name)
        try:
            raw = hook(event)
            if inspect.isawaitable(raw):
                raw = asyncio.run(_await_with_deadline(raw, self._hook_timeout))
            return _Outcome(result=_coerce_result(descriptor.name, raw))
        except Exception as exc:
            error = exc
            if isinstance(exc, TimeoutError):
                error = HookTimeoutError(
                    f"Hook did not finish within {self._hook_timeout}s",
                    extension=descriptor.name,
                )
            _log_hook_failure(descriptor.name, event.kind, error)
            return _Outcome(error=str(error) or type(error).__name__)


async def _await_with_deadline(awaitable: Awaitable[Any], timeout: float) -> Any:
    return await asyncio.wait_for(awaitable, timeout=timeout)


def _coerce_result(extension: str, raw: object) -> NoUpdate | Seed | Patch:
    if raw is None:
        return NO_UPDATE
    if isinstance(raw, NoUpdate | Seed | Patch):
        return raw
    msg = f"Hook returned {type(raw).__name__}; expected NoUpdate, Seed, Patch, or None"
    raise HookExecutionError(msg, extension=extension)


def _log_hook_failure(extension: str, event_kind: str, error: BaseException) -> None:
    log.warning(
        "extension.hook_failed",
        extension=extension,
        event_kind=str(event_kind),
        error=str(error) or type(error).__name__,
        error_type=type(error).__name__,
    )
