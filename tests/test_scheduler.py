"""Tests for timer primitives on the asyncio loop."""

import asyncio

import pytest

from latency_monitor.connectors.base import Scheduler


@pytest.mark.asyncio
async def test_schedule_once_fires_once():
    scheduler = Scheduler()
    calls = []

    scheduler.schedule_once(0.01, lambda: calls.append("fired"))
    await asyncio.sleep(0.05)

    assert calls == ["fired"]


@pytest.mark.asyncio
async def test_cancelled_once_never_fires():
    scheduler = Scheduler()
    calls = []

    handle = scheduler.schedule_once(0.01, lambda: calls.append("fired"))
    scheduler.cancel(handle)
    await asyncio.sleep(0.05)

    assert calls == []


@pytest.mark.asyncio
async def test_schedule_every_repeats_until_cancelled():
    scheduler = Scheduler()
    calls = []

    handle = scheduler.schedule_every(0.01, lambda: calls.append(1))
    await asyncio.sleep(0.06)
    scheduler.cancel(handle)
    count = len(calls)
    await asyncio.sleep(0.04)

    assert count >= 2
    assert len(calls) == count
    assert handle.cancelled()


@pytest.mark.asyncio
async def test_recurring_callback_can_cancel_itself():
    scheduler = Scheduler()
    calls = []

    def tick():
        calls.append(1)
        if len(calls) == 2:
            scheduler.cancel(handle)

    handle = scheduler.schedule_every(0.01, tick)
    await asyncio.sleep(0.1)

    assert len(calls) == 2


@pytest.mark.asyncio
async def test_invalid_interval():
    with pytest.raises(ValueError):
        Scheduler().schedule_every(0, lambda: None)


def test_cancel_none_is_noop():
    Scheduler().cancel(None)
