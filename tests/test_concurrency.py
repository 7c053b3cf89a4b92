"""Tests for the concurrency supervisor."""

import asyncio

import pytest

from hivekit.agents.concurrency import ConcurrencySupervisor
from hivekit.agents.errors import ConfigurationError, StateError


async def hold(supervisor, agent, tracker, release_event):
    async with supervisor.slot(agent):
        tracker["running"] += 1
        tracker["max"] = max(tracker["max"], tracker["running"])
        await release_event.wait()
        tracker["running"] -= 1
        tracker["done"] += 1


@pytest.mark.asyncio
async def test_global_limit_plus_one_queues_one_task():
    supervisor = ConcurrencySupervisor(global_limit=3, local_limit=10)
    tracker = {"running": 0, "max": 0, "done": 0}
    gate = asyncio.Event()

    tasks = [asyncio.create_task(hold(supervisor, f"agent{i}", tracker, gate)) for i in range(4)]
    await asyncio.sleep(0.01)

    assert tracker["running"] == 3
    assert supervisor.active == 3

    gate.set()
    await asyncio.wait_for(asyncio.gather(*tasks), timeout=1)

    assert tracker["done"] == 4
    assert tracker["max"] == 3
    assert supervisor.active == 0
    assert supervisor.peak == 3


@pytest.mark.asyncio
async def test_local_limit_bounds_one_agent():
    supervisor = ConcurrencySupervisor(global_limit=10, local_limit=2)
    tracker = {"running": 0, "max": 0, "done": 0}
    gate = asyncio.Event()

    busy = [asyncio.create_task(hold(supervisor, "lead", tracker, gate)) for _ in range(4)]
    await asyncio.sleep(0.01)
    assert supervisor.active_for("lead") == 2

    # Another agent is not held back by lead's queue.
    other = await asyncio.wait_for(supervisor.acquire("worker"), timeout=1)
    assert supervisor.active == 3
    supervisor.release(other)

    gate.set()
    await asyncio.wait_for(asyncio.gather(*busy), timeout=1)
    assert tracker["max"] == 2


@pytest.mark.asyncio
async def test_agent_specific_limit():
    supervisor = ConcurrencySupervisor(global_limit=10, local_limit=5, agent_limits={"solo": 1})
    first = await supervisor.acquire("solo")
    waiter = asyncio.create_task(supervisor.acquire("solo"))
    await asyncio.sleep(0.01)
    assert not waiter.done()

    supervisor.release(first)
    second = await asyncio.wait_for(waiter, timeout=1)
    supervisor.release(second)
    assert supervisor.limit_for("solo") == 1
    assert supervisor.limit_for("other") == 5


@pytest.mark.asyncio
async def test_double_release_raises():
    supervisor = ConcurrencySupervisor(global_limit=1, local_limit=1)
    lease = await supervisor.acquire("a")
    supervisor.release(lease)

    with pytest.raises(StateError, match="released twice"):
        supervisor.release(lease)

    assert supervisor.active == 0


@pytest.mark.asyncio
async def test_slot_released_on_exception():
    supervisor = ConcurrencySupervisor(global_limit=1, local_limit=1)

    with pytest.raises(RuntimeError):
        async with supervisor.slot("a"):
            raise RuntimeError("boom")

    lease = await asyncio.wait_for(supervisor.acquire("a"), timeout=1)
    supervisor.release(lease)


@pytest.mark.asyncio
async def test_cancelled_waiter_holds_nothing():
    supervisor = ConcurrencySupervisor(global_limit=1, local_limit=5)
    held = await supervisor.acquire("a")

    waiter = asyncio.create_task(supervisor.acquire("b"))
    await asyncio.sleep(0.01)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    supervisor.release(held)
    assert supervisor.active == 0
    assert supervisor.active_for("b") == 0

    # Both limiters are intact: agent b can still take a slot.
    lease = await asyncio.wait_for(supervisor.acquire("b"), timeout=1)
    supervisor.release(lease)


@pytest.mark.asyncio
async def test_cancelling_slot_holder_releases():
    supervisor = ConcurrencySupervisor(global_limit=1, local_limit=1)
    started = asyncio.Event()

    async def worker():
        async with supervisor.slot("a"):
            started.set()
            await asyncio.sleep(10)

    task = asyncio.create_task(worker())
    await started.wait()
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)

    assert supervisor.active == 0
    stats = supervisor.stats()
    assert stats.total_acquired == 1
    assert stats.active_by_agent == {}


def test_invalid_limits():
    with pytest.raises(ConfigurationError):
        ConcurrencySupervisor(global_limit=0)
    with pytest.raises(ConfigurationError):
        ConcurrencySupervisor(agent_limits={"a": 0})
