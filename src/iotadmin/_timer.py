"""Single-owner rearmable timer for periodic and debounced work."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

_logger = logging.getLogger(__name__)


class RearmableTimer:
    """One ``loop.call_later`` handle that is always cancelled before re-arming.

    The callback is a coroutine function.  When the timer fires, the callback
    runs as a task; exceptions are logged and never propagate into the loop.
    Cancelling the timer does not cancel a callback that is already running,
    only :meth:`close` does.
    """

    def __init__(self, name: str, callback: Callable[[], Awaitable[None]]) -> None:
        self._name = name
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None
        self._delay: float | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def armed(self) -> bool:
        """Whether a fire is pending."""
        return self._handle is not None

    @property
    def delay(self) -> float | None:
        """Delay (seconds) the pending fire was armed with."""
        return self._delay if self._handle is not None else None

    @property
    def when(self) -> float | None:
        """Loop time at which the pending fire is due."""
        return self._handle.when() if self._handle is not None else None

    @property
    def running(self) -> bool:
        """Whether a previously fired callback is still running."""
        return any(not task.done() for task in self._tasks)

    def rearm(self, delay: float) -> None:
        """Cancel any pending fire and schedule a new one in *delay* seconds."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._delay = max(0.0, delay)
        self._handle = loop.call_later(self._delay, self._fire)
        _logger.debug("Timer %s armed for %.3fs", self._name, self._delay)

    def cancel(self) -> None:
        """Cancel the pending fire, if any."""
        handle = self._handle
        self._handle = None
        self._delay = None
        if handle is not None:
            handle.cancel()

    async def close(self) -> None:
        """Cancel the pending fire and any callback still running."""
        self.cancel()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks.clear()

    def _fire(self) -> None:
        self._handle = None
        self._delay = None
        task = asyncio.get_running_loop().create_task(self._run(), name=f"iotadmin-{self._name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self) -> None:
        try:
            await self._callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            _logger.exception("Timer %s callback failed", self._name)
