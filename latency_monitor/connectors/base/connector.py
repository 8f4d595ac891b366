"""Base WebSocket connector with automatic reconnection."""

import asyncio
import random
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

import websockets
from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

from .config import ConnectorConfig
from .events import Event, EventKind
from .scheduler import Scheduler
from .state import ConnectionState
from latency_monitor.models import WindowSummary
from latency_monitor.rate_limited_logger import RateLimitedLogger
from latency_monitor.stats import StatsAggregator


class ConnectionSupervisor(ABC):
    """Keeps one WebSocket connection nailed up and summarises its traffic.

    All state changes happen in ``dispatch``, one event at a time, on the
    event loop thread. Other threads must go through ``post``.
    """

    def __init__(
        self,
        config: ConnectorConfig,
        logger: RateLimitedLogger,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config
        self.logger = logger
        self.scheduler = scheduler or Scheduler()
        self.state = ConnectionState.IDLE
        self.retry_count = 0  # consecutive failed attempts
        self.latency = StatsAggregator("latency")  # microseconds
        self.price = StatsAggregator("price")  # cents
        self.ws: Any = None  # WebSocket connection object

        self._rng = rng
        self._retry_handle: Any = None
        self._tick_handle: Any = None
        self._attempt_task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stop_event = asyncio.Event()
        self._summary_callbacks: list[Callable[[WindowSummary], None]] = []
        self._last_valid_time = time.monotonic()
        self._pinged = False

        self._handlers: dict[EventKind, Callable[[Any], None]] = {
            EventKind.CONNECT: self._on_connect,
            EventKind.CONNECT_SUCCEEDED: self._on_established,
            EventKind.CONNECT_FAILED: self._on_connect_failed,
            EventKind.MESSAGE: self._on_message,
            EventKind.TICK: self._on_tick,
            EventKind.CLOSED: self._on_closed,
        }

    @abstractmethod
    def _handle_message(self, message: bytes) -> None:
        """Extract samples from one message and fold them (stream-specific)."""
        pass

    async def _connect(self) -> Any:
        """Open the WebSocket connection."""
        return await websockets.connect(
            self.config.url,
            compression=self.config.compression,
            subprotocols=list(self.config.subprotocols) or None,
            ping_interval=None,  # idle pings are driven by the retry policy
        )

    # -- lifecycle -----------------------------------------------------------

    def start(self) -> None:
        """Schedule the first connection attempt to happen immediately."""
        self._loop = asyncio.get_running_loop()
        self._stop_event.clear()
        if self.state in (ConnectionState.CLOSED, ConnectionState.FAILED):
            self.state = ConnectionState.IDLE
            self.retry_count = 0
        self._arm_retry(0)

    async def run(self) -> ConnectionState:
        """Run until stopped or retries are exhausted; return the final state."""
        self.start()
        await self._stop_event.wait()
        return self.state

    async def stop(self) -> None:
        """Stop the connector gracefully."""
        self.logger.info("Stopping...")
        self._cancel_timers()

        task = self._attempt_task
        self._attempt_task = None
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        await self._disconnect(self.ws)
        self.ws = None
        if self.state is not ConnectionState.FAILED:
            self.state = ConnectionState.CLOSED
        self.logger.flush_suppressed()
        self._stop_event.set()

    def is_connected(self) -> bool:
        """Check if connector is currently connected."""
        return self.state == ConnectionState.ESTABLISHED

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def add_summary_callback(
        self, callback: Callable[[WindowSummary], None]
    ) -> None:
        self._summary_callbacks.append(callback)

    # -- event dispatch ------------------------------------------------------

    def dispatch(self, event: Event) -> None:
        """Apply one event to the state machine."""
        if self.state is ConnectionState.FAILED:
            return
        self._handlers[event.kind](event.payload)

    def post(self, event: Event) -> None:
        """Deliver an event from any thread; it is dispatched on the loop."""
        if self._loop is None:
            raise RuntimeError("supervisor not started")
        self._loop.call_soon_threadsafe(self.dispatch, event)

    def _on_connect(self, _: Any) -> None:
        # Also drops a pending retry when CONNECT arrives from outside
        self.scheduler.cancel(self._retry_handle)
        self._retry_handle = None
        if self.state not in (ConnectionState.IDLE, ConnectionState.CLOSED):
            self.logger.debug(f"Ignoring connect request while {self.state}")
            return

        self.logger.debug(
            f"Connecting to {self.config.url} (attempt {self.retry_count + 1})"
        )
        self.state = ConnectionState.CONNECTING
        self._attempt_task = asyncio.get_running_loop().create_task(self._attempt())

    def _on_connect_failed(self, reason: Any) -> None:
        if self.state is not ConnectionState.CONNECTING:
            return
        self.state = ConnectionState.IDLE
        self._retry(reason)

    def _on_established(self, ws: Any) -> None:
        if self.state is not ConnectionState.CONNECTING:
            return
        self.ws = ws
        self.retry_count = 0
        self.latency.reset()
        self.price.reset()
        self._mark_valid()

        self.scheduler.cancel(self._tick_handle)
        self._tick_handle = self.scheduler.schedule_every(
            self.config.tick_interval, lambda: self.dispatch(Event(EventKind.TICK))
        )
        self.state = ConnectionState.ESTABLISHED
        self.logger.info("Connected successfully")

    def _on_message(self, message: Any) -> None:
        if self.state is not ConnectionState.ESTABLISHED:
            return
        if isinstance(message, str):
            message = message.encode("utf-8")
        self._handle_message(message)

    def _on_tick(self, _: Any) -> None:
        if self.state is not ConnectionState.ESTABLISHED:
            return
        summary = WindowSummary(
            latency=self.latency.snapshot_and_reset(),
            price=self.price.snapshot_and_reset(),
            ts=int(time.time() * 1000),
        )
        self._emit_summary(summary)

    def _on_closed(self, reason: Any) -> None:
        if self.state is not ConnectionState.ESTABLISHED:
            return
        self.scheduler.cancel(self._tick_handle)
        self._tick_handle = None
        self.ws = None
        self.state = ConnectionState.IDLE
        self._retry(reason)

    # -- retry ---------------------------------------------------------------

    def _retry(self, reason: Any) -> None:
        """Schedule the next attempt, or give up once retries are exhausted.

        Problems are concealed for one pass over the backoff table (or forever
        if conceal_count is larger than the table) and then become fatal.
        """
        policy = self.config.retry
        delay_ms = policy.next_delay(self.retry_count, self._rng)

        if delay_ms is None:
            self.logger.error(
                f"Connection attempts exhausted after {self.retry_count} retries: "
                f"{reason}"
            )
            self.state = ConnectionState.FAILED
            self._cancel_timers()
            self._stop_event.set()
            return

        self.retry_count += 1
        self.logger.connection_error(reason, self.retry_count, policy.conceal_count)
        self.logger.info(f"Reconnecting in {delay_ms / 1000:.3f}s...")
        self._arm_retry(delay_ms / 1000)

    def _arm_retry(self, delay: float) -> None:
        self.scheduler.cancel(self._retry_handle)
        self._retry_handle = self.scheduler.schedule_once(
            delay, lambda: self.dispatch(Event(EventKind.CONNECT))
        )

    def _cancel_timers(self) -> None:
        self.scheduler.cancel(self._retry_handle)
        self.scheduler.cancel(self._tick_handle)
        self._retry_handle = None
        self._tick_handle = None

    # -- transport -----------------------------------------------------------

    async def _attempt(self) -> None:
        """Connect, then pump messages until the connection goes away."""
        try:
            ws = await asyncio.wait_for(
                self._connect(), timeout=self.config.connect_timeout
            )
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError:
            self.dispatch(
                Event(EventKind.CONNECT_FAILED, "Connection attempt timed out")
            )
            return
        except Exception as e:
            self.dispatch(Event(EventKind.CONNECT_FAILED, e))
            return

        self.dispatch(Event(EventKind.CONNECT_SUCCEEDED, ws))
        if self.ws is not ws:
            await self._disconnect(ws)
            return

        try:
            await self._receive_loop(ws)
            reason: Any = "Connection closed"
        except asyncio.CancelledError:
            raise
        except Exception as e:
            reason = e

        await self._disconnect(ws)
        self.dispatch(Event(EventKind.CLOSED, reason))

    async def _receive_loop(self, ws: Any) -> None:
        """Deliver messages, pinging and hanging up on idle connections."""
        policy = self.config.retry

        while self.ws is ws:
            try:
                message = await asyncio.wait_for(
                    ws.recv(), timeout=self._idle_timeout()
                )
            except asyncio.TimeoutError:
                idle = time.monotonic() - self._last_valid_time
                if idle >= policy.secs_since_valid_hangup:
                    raise ConnectionError(f"No valid traffic for {idle:.0f}s")
                if not self._pinged:
                    self._pinged = True
                    pong_waiter = await ws.ping()
                    pong_waiter.add_done_callback(self._on_pong)
                continue
            except ConnectionClosed as e:
                self.logger.warning(f"Connection closed: {e}")
                raise

            self._mark_valid()
            self.dispatch(Event(EventKind.MESSAGE, message))

    def _idle_timeout(self) -> float:
        policy = self.config.retry
        idle = time.monotonic() - self._last_valid_time
        limit = policy.secs_since_valid_hangup
        if not self._pinged and policy.secs_since_valid_ping < limit:
            limit = policy.secs_since_valid_ping
        return max(limit - idle, 0.0)

    def _mark_valid(self) -> None:
        self._last_valid_time = time.monotonic()
        self._pinged = False

    def _on_pong(self, waiter: asyncio.Future) -> None:
        if not waiter.cancelled() and waiter.exception() is None:
            self._mark_valid()

    async def _disconnect(self, ws: Any) -> None:
        """Close WebSocket connection."""
        if ws is None:
            return
        try:
            if getattr(ws, "state", None) != State.CLOSED:
                await asyncio.wait_for(ws.close(), timeout=5.0)
        except asyncio.TimeoutError:
            self.logger.warning("Disconnect timeout")
        except Exception as e:
            # Already-closed connections end up here
            self.logger.debug(f"Disconnect error: {e}")

    # -- summaries -----------------------------------------------------------

    def _emit_summary(self, summary: WindowSummary) -> None:
        price, latency = summary.price, summary.latency

        if price.samples:
            self.logger.info(
                f"price: min: {price.lowest}¢, max: {price.highest}¢, "
                f"avg: {price.mean}¢, ({price.samples} prices/s)"
            )
        if latency.samples:
            self.logger.info(
                f"elatency: min: {latency.lowest // 1000}ms, "
                f"max: {latency.highest // 1000}ms, "
                f"avg: {latency.mean // 1000}ms, ({latency.samples} msg/s)"
            )

        for callback in self._summary_callbacks:
            callback(summary)
