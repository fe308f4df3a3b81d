"""Tests for the in-memory message bus."""

from __future__ import annotations

import asyncio

import pytest
import pytest_asyncio
from pydantic import BaseModel

from shared.messaging.memory.MessageBusMemory import MessageBusMemory
from shared.models.errors import DataIntegrityError


class Ping(BaseModel):
    n: int


class Pong(BaseModel):
    n: int


@pytest_asyncio.fixture
async def memory_bus(helper_config, monkeypatch):
    monkeypatch.setenv("BUS_WORKERS", "2")
    monkeypatch.setenv("BUS_MAX_ATTEMPTS", "3")
    bus = MessageBusMemory(helper_config)
    yield bus
    await bus.stop()


@pytest.mark.asyncio
async def test_messages_reach_their_consumer(memory_bus):
    received: list[int] = []

    async def handle(message: Ping) -> None:
        received.append(message.n)

    memory_bus.subscribe(Ping, handle)
    await memory_bus.start()
    for n in range(5):
        await memory_bus.publish(Ping(n=n))
    await memory_bus.join()

    assert sorted(received) == [0, 1, 2, 3, 4]
    assert memory_bus.get_dead_letters() == []


@pytest.mark.asyncio
async def test_handlers_can_publish_follow_up_messages(memory_bus):
    received: list[int] = []

    async def on_ping(message: Ping) -> None:
        await memory_bus.publish(Pong(n=message.n * 10))

    async def on_pong(message: Pong) -> None:
        received.append(message.n)

    memory_bus.subscribe(Ping, on_ping)
    memory_bus.subscribe(Pong, on_pong)
    await memory_bus.start()
    await memory_bus.publish(Ping(n=1))
    await memory_bus.join()

    assert received == [10]


@pytest.mark.asyncio
async def test_failed_delivery_is_retried(memory_bus):
    attempts: list[int] = []

    async def flaky(message: Ping) -> None:
        attempts.append(message.n)
        if len(attempts) < 3:
            raise ConnectionError("index not ready")

    memory_bus.subscribe(Ping, flaky)
    await memory_bus.start()
    await memory_bus.publish(Ping(n=7))
    await memory_bus.join()

    assert attempts == [7, 7, 7]
    assert memory_bus.get_dead_letters() == []


@pytest.mark.asyncio
async def test_exhausted_message_is_dead_lettered(memory_bus):
    attempts: list[int] = []

    async def always_fails(message: Ping) -> None:
        attempts.append(message.n)
        raise RuntimeError("still broken")

    memory_bus.subscribe(Ping, always_fails)
    await memory_bus.start()
    await memory_bus.publish(Ping(n=1))
    await memory_bus.join()

    assert len(attempts) == 3
    [letter] = memory_bus.get_dead_letters()
    assert letter.message_type == "Ping"
    assert letter.message == {"n": 1}
    assert letter.attempts == 3
    assert "RuntimeError: still broken" in letter.error


@pytest.mark.asyncio
async def test_data_integrity_errors_are_not_retried(memory_bus):
    attempts: list[int] = []

    async def corrupt(message: Ping) -> None:
        attempts.append(message.n)
        raise DataIntegrityError("dimension mismatch")

    memory_bus.subscribe(Ping, corrupt)
    await memory_bus.start()
    await memory_bus.publish(Ping(n=1))
    await memory_bus.join()

    assert attempts == [1]
    assert memory_bus.get_dead_letters()[0].attempts == 1


@pytest.mark.asyncio
async def test_publish_without_consumer_raises(memory_bus):
    with pytest.raises(ValueError, match="Ping"):
        await memory_bus.publish(Ping(n=1))


def test_second_consumer_for_a_type_is_rejected(helper_config):
    bus = MessageBusMemory(helper_config)

    async def handle(message: Ping) -> None:
        pass

    bus.subscribe(Ping, handle)
    with pytest.raises(ValueError, match="already has a consumer"):
        bus.subscribe(Ping, handle)


@pytest.mark.asyncio
async def test_stop_cancels_running_handlers(memory_bus):
    started = asyncio.Event()

    async def slow(message: Ping) -> None:
        started.set()
        await asyncio.sleep(60)

    memory_bus.subscribe(Ping, slow)
    await memory_bus.start()
    await memory_bus.publish(Ping(n=1))
    await asyncio.wait_for(started.wait(), timeout=5)

    await asyncio.wait_for(memory_bus.stop(), timeout=5)

    assert memory_bus.get_dead_letters() == []
