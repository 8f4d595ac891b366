"""Shared fakes for connector tests."""

import asyncio
import logging

import pytest

from latency_monitor.connectors.base import ConnectorConfig, RetryPolicy
from latency_monitor.rate_limited_logger import RateLimitedLogger


class FakeHandle:
    def __init__(self, delay, callback, recurring=False):
        self.delay = delay
        self.callback = callback
        self.recurring = recurring
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        assert not self.cancelled, "fired a cancelled handle"
        if not self.recurring:
            self.fired = True
        self.callback()


class FakeScheduler:
    """Records armed timers instead of waiting for them."""

    def __init__(self):
        self.once: list[FakeHandle] = []
        self.every: list[FakeHandle] = []

    def schedule_once(self, delay, callback):
        handle = FakeHandle(delay, callback)
        self.once.append(handle)
        return handle

    def schedule_every(self, interval, callback):
        handle = FakeHandle(interval, callback, recurring=True)
        self.every.append(handle)
        return handle

    def cancel(self, handle):
        if handle is not None:
            handle.cancel()

    @property
    def active_once(self):
        return [h for h in self.once if not h.cancelled and not h.fired]

    @property
    def active_every(self):
        return [h for h in self.every if not h.cancelled]


class FakeWebSocket:
    """Connection whose incoming messages are fed through a queue."""

    def __init__(self):
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.closed = False
        self.state = None
        self.pings = 0
        self.answer_pings = True

    async def recv(self):
        item = await self.incoming.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def ping(self):
        self.pings += 1
        waiter = asyncio.get_running_loop().create_future()
        if self.answer_pings:
            waiter.set_result(0.0)
        return waiter

    async def close(self):
        self.closed = True


async def drain(rounds: int = 50) -> None:
    """Let pending tasks and callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def retry_policy():
    return RetryPolicy(backoff_ms=(1000, 2000, 3000, 4000, 5000), conceal_count=5)


@pytest.fixture
def connector_config(retry_policy):
    return ConnectorConfig(
        name="test",
        address="example.invalid",
        path="/stream?streams=btcusdt@depth@0ms",
        retry=retry_policy,
    )


@pytest.fixture
def rl_logger():
    return RateLimitedLogger("test", logging.getLogger("tests"), window=10.0)


@pytest.fixture
def fake_scheduler():
    return FakeScheduler()
