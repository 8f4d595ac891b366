"""Timer primitives on top of the running asyncio loop."""

import asyncio
from typing import Callable, Optional, Protocol


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class RecurringHandle:
    """Handle for a callback re-armed every ``interval`` seconds."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        interval: float,
        callback: Callable[[], None],
    ):
        self._loop = loop
        self._interval = interval
        self._callback = callback
        self._deadline = loop.time() + interval
        self._timer: Optional[asyncio.TimerHandle] = loop.call_at(
            self._deadline, self._fire
        )

    def _fire(self) -> None:
        # Re-arm first so the callback can cancel us
        self._deadline += self._interval
        self._timer = self._loop.call_at(self._deadline, self._fire)
        self._callback()

    def cancel(self) -> None:
        if self._timer:
            self._timer.cancel()
            self._timer = None

    def cancelled(self) -> bool:
        return self._timer is None


class Scheduler:
    """Arms one-shot and recurring callbacks on the running loop."""

    def schedule_once(
        self, delay: float, callback: Callable[[], None]
    ) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)

    def schedule_every(
        self, interval: float, callback: Callable[[], None]
    ) -> RecurringHandle:
        if interval <= 0:
            raise ValueError(f"interval must be positive: {interval}")
        return RecurringHandle(asyncio.get_running_loop(), interval, callback)

    def cancel(self, handle: Optional[Cancellable]) -> None:
        if handle is not None:
            handle.cancel()
