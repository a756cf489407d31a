"""
One-shot timers for debounce delays and cache eviction.
"""

import asyncio
import threading
from typing import Callable, Optional, Protocol


class TimerHandle(Protocol):
    """Anything that can be cancelled before it fires."""

    def cancel(self) -> None:
        ...


def schedule(delay_ms: float, callback: Callable[[], None],
             loop: Optional[asyncio.AbstractEventLoop] = None) -> TimerHandle:
    """Arm a one-shot timer that calls ``callback`` after ``delay_ms``.

    The timer lives on the running event loop when there is one. Synchronous
    callers without a loop get a daemon ``threading.Timer`` instead, so the
    callback then runs on another thread.
    """
    delay = max(0.0, delay_ms / 1000.0)

    if loop is None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

    if loop is not None:
        return loop.call_later(delay, callback)

    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer
