"""
Debouncer: collapse a burst of calls into one delayed execution.

Every call to :meth:`Debouncer.invoke` re-arms a single timer and hands back
a fresh future. Only the last call of a burst ever runs. Futures of
superseded or cancelled calls are abandoned: by default they never settle,
so callers that cannot wait forever should guard the await with
``asyncio.wait_for``. Debouncers built with ``reject_abandoned=True`` fail
those futures with :class:`~shared.errors.DebounceAbandonedError` instead.
"""

import asyncio
import functools
import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, NamedTuple, Optional, ParamSpec, Set, Tuple, TypeVar

from shared.config import get_settings
from shared.errors import DebounceAbandonedError
from shared.logging import get_logger, wrapper_context
from shared.metrics import WrapperMetrics, get_wrapper_metrics

from .options import DebounceOptions, describe, require_callable, validate_options

P = ParamSpec("P")
R = TypeVar("R")


@dataclass
class PendingInvocation:
    """The one call waiting for its delay to elapse."""

    timer: asyncio.TimerHandle
    future: "asyncio.Future[Any]"
    args: Tuple[Any, ...] = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)


class Debouncer(Generic[P, R]):
    """Debounce a function so only the last call of a burst runs."""

    def __init__(self,
                 func: Callable[P, R],
                 delay_ms: float,
                 *,
                 reject_abandoned: bool = False,
                 name: Optional[str] = None,
                 metrics: Optional[WrapperMetrics] = None):
        require_callable(func)
        options = validate_options(
            DebounceOptions,
            delay_ms=delay_ms,
            reject_abandoned=reject_abandoned,
            name=name,
        )

        self._func = func
        self.delay_ms = options.delay_ms
        self.reject_abandoned = options.reject_abandoned
        self.name = options.name or describe(func)
        self.logger = get_logger("coalesce.debounce")

        if metrics is None and get_settings().metrics_enabled:
            metrics = get_wrapper_metrics()
        self.metrics = metrics

        self._pending: Optional[PendingInvocation] = None
        self._tasks: Set["asyncio.Task[Any]"] = set()

    @property
    def pending(self) -> bool:
        """Whether a call is waiting for its delay to elapse."""
        return self._pending is not None

    def invoke(self, *args: P.args, **kwargs: P.kwargs) -> "asyncio.Future[R]":
        """Schedule ``func(*args, **kwargs)`` after the delay.

        Must be called from a running event loop. Any call still waiting is
        superseded and its future abandoned.
        """
        loop = asyncio.get_running_loop()

        if self._pending is not None:
            self._abandon("superseded")

        future: "asyncio.Future[R]" = loop.create_future()
        timer = loop.call_later(self.delay_ms / 1000.0, self._fire)
        self._pending = PendingInvocation(timer=timer, future=future, args=args, kwargs=kwargs)

        self.logger.debug("Debounced call scheduled", debouncer=self.name, delay_ms=self.delay_ms)
        self._record("scheduled")
        return future

    def __call__(self, *args: P.args, **kwargs: P.kwargs) -> "asyncio.Future[R]":
        return self.invoke(*args, **kwargs)

    def cancel(self) -> bool:
        """Drop the waiting call, if any. Returns whether one was waiting."""
        if self._pending is None:
            return False

        self._abandon("cancelled")
        return True

    def flush(self) -> Optional["asyncio.Future[R]"]:
        """Run the waiting call now instead of after the delay.

        Returns the future of the flushed call, or ``None`` when nothing was
        waiting.
        """
        pending = self._pending
        if pending is None:
            return None

        pending.timer.cancel()
        self._fire()
        return pending.future

    def _abandon(self, reason: str) -> None:
        pending = self._pending
        self._pending = None
        pending.timer.cancel()

        if self.reject_abandoned and not pending.future.done():
            pending.future.set_exception(
                DebounceAbandonedError(reason, details={"debouncer": self.name})
            )

        self.logger.debug("Debounced call abandoned", debouncer=self.name, reason=reason)
        self._record(reason)

    def _fire(self) -> None:
        pending = self._pending
        if pending is None:
            return
        self._pending = None

        self.logger.debug("Debounced call executing", debouncer=self.name)
        self._record("executed")

        with wrapper_context(self.name):
            try:
                result = self._func(*pending.args, **pending.kwargs)
            except Exception as exc:
                _set_exception(pending.future, exc)
                return

            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
                task.add_done_callback(functools.partial(_relay, pending.future))
                return

        if not pending.future.done():
            pending.future.set_result(result)

    def _record(self, event: str) -> None:
        if self.metrics is not None:
            self.metrics.record_debounce_event(self.name, event)


def _set_exception(future: "asyncio.Future[Any]", exc: BaseException) -> None:
    # The caller may have given up on the future already
    if not future.done():
        future.set_exception(exc)


def _relay(future: "asyncio.Future[Any]", task: "asyncio.Task[Any]") -> None:
    """Copy the outcome of an awaited result onto the caller's future."""
    if future.done():
        if not task.cancelled():
            task.exception()
        return

    if task.cancelled():
        future.cancel()
    elif task.exception() is not None:
        future.set_exception(task.exception())
    else:
        future.set_result(task.result())


class DebouncedHandle(NamedTuple):
    """What ``create_debounced`` hands back; unpacks as ``(invoke, cancel)``."""

    invoke: Callable[..., "asyncio.Future[Any]"]
    cancel: Callable[[], bool]


def create_debounced(func: Callable[P, R], delay_ms: float, **kwargs: Any) -> DebouncedHandle:
    """Wrap ``func`` in a new, independent :class:`Debouncer`.

    Extra keyword arguments (``reject_abandoned``, ``name``, ``metrics``) go
    to the debouncer.
    """
    debouncer = Debouncer(func, delay_ms, **kwargs)
    return DebouncedHandle(invoke=debouncer.invoke, cancel=debouncer.cancel)
