"""Tests for utils and the ledger."""

import asyncio
import time

import pytest

from sony.audiocontrol import Domain
from sony.audiocontrol.ledger import Ledger
from sony.audiocontrol.utils import (
    PRIORITY_COMMAND,
    PRIORITY_POLL,
    PRIORITY_QUERY,
    Backoff,
    Throttle,
)

# --- Throttle ---


async def test_throttle_no_delay_on_first_call():
    """Test that Throttle.get() returns immediately on first call."""
    throttle = Throttle(0.1)
    start = time.monotonic()
    await throttle.get()
    elapsed = time.monotonic() - start
    assert elapsed < 0.05


async def test_throttle_delays_subsequent_calls():
    """Test that Throttle.get() delays second call by configured delay."""
    throttle = Throttle(0.1)
    await throttle.get()
    start = time.monotonic()
    await throttle.get()
    elapsed = time.monotonic() - start
    assert elapsed >= 0.05


async def test_throttle_priority_ordering():
    """Commands overtake queries, queries overtake polls."""
    throttle = Throttle(0.01)
    order = []

    async def acquire(priority, label):
        await throttle.get(priority=priority)
        order.append(label)

    await throttle.get()

    tasks = [
        asyncio.create_task(acquire(PRIORITY_POLL, "poll")),
        asyncio.create_task(acquire(PRIORITY_COMMAND, "command")),
        asyncio.create_task(acquire(PRIORITY_QUERY, "query")),
    ]
    await asyncio.sleep(0)
    await asyncio.gather(*tasks)

    assert order == ["command", "query", "poll"]


async def test_throttle_cancelled_waiter_is_skipped():
    throttle = Throttle(0.01)
    await throttle.get()

    task1 = asyncio.create_task(throttle.get())
    task2 = asyncio.create_task(throttle.get())
    await asyncio.sleep(0)
    task1.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task1
    await task2


# --- Backoff ---


def test_backoff_doubles_until_cap():
    backoff = Backoff(0.5, 3.0)
    assert backoff.delay == 0.0
    assert [backoff.failed() for _ in range(5)] == [0.5, 1.0, 2.0, 3.0, 3.0]
    assert backoff.failures == 5


def test_backoff_reset():
    backoff = Backoff(0.5, 30.0)
    backoff.failed()
    backoff.failed()
    backoff.reset()
    assert backoff.failures == 0
    assert backoff.failed() == 0.5


# --- Ledger ---


def test_ledger_echo_window(clock):
    ledger = Ledger(clock)
    assert not ledger.is_echo(Domain.VOLUME, 1.0)

    ledger.stamp(Domain.VOLUME)
    assert ledger.last_change(Domain.VOLUME) == clock.now
    assert ledger.is_echo(Domain.VOLUME, 1.0)
    assert not ledger.is_echo(Domain.MUTE, 1.0)

    clock.advance(0.99)
    assert ledger.is_echo(Domain.VOLUME, 1.0)
    clock.advance(0.02)
    assert not ledger.is_echo(Domain.VOLUME, 1.0)


def test_ledger_zero_window(clock):
    ledger = Ledger(clock)
    ledger.stamp(Domain.POWER)
    assert not ledger.is_echo(Domain.POWER, 0.0)


def test_ledger_lock_per_domain():
    ledger = Ledger()
    assert ledger.lock(Domain.VOLUME) is ledger.lock(Domain.VOLUME)
    assert ledger.lock(Domain.VOLUME) is not ledger.lock(Domain.MUTE)


async def test_ledger_lock_serializes_writers():
    ledger = Ledger()
    events = []

    async def writer(label):
        async with ledger.lock(Domain.VOLUME):
            events.append(f"{label} start")
            await asyncio.sleep(0.01)
            events.append(f"{label} end")

    await asyncio.gather(writer("a"), writer("b"))
    assert events == ["a start", "a end", "b start", "b end"]
