"""Unit tests for the in-memory realtime connection registry"""

import asyncio
from uuid import uuid4

import sys
from pathlib import Path
backend_src = Path(__file__).parent.parent.parent / "src"
sys.path.insert(0, str(backend_src))

from notifications.registry import InMemoryConnectionRegistry


class FakeConnection:
    """Stands in for a starlette WebSocket."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []
        self.closed = False

    async def send_json(self, payload):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(payload)

    async def close(self):
        self.closed = True


class TestInMemoryConnectionRegistry:

    def test_send_to_every_connection_of_the_user(self):
        registry = InMemoryConnectionRegistry()
        user_id, other_user = uuid4(), uuid4()
        laptop, phone, stranger = FakeConnection(), FakeConnection(), FakeConnection()

        async def scenario():
            await registry.register(user_id, laptop)
            await registry.register(user_id, phone)
            await registry.register(other_user, stranger)
            return await registry.send_to_user(user_id, {"type": "document_rejected"})

        delivered = asyncio.run(scenario())

        assert delivered == 2
        assert laptop.sent == [{"type": "document_rejected"}]
        assert phone.sent == [{"type": "document_rejected"}]
        assert stranger.sent == []

    def test_dead_connections_are_dropped(self):
        registry = InMemoryConnectionRegistry()
        user_id = uuid4()
        alive, dead = FakeConnection(), FakeConnection(fail=True)

        async def scenario():
            await registry.register(user_id, alive)
            await registry.register(user_id, dead)
            return await registry.send_to_user(user_id, {"event": "x"})

        assert asyncio.run(scenario()) == 1
        assert registry.connection_count(user_id) == 1

    def test_send_without_connections(self):
        registry = InMemoryConnectionRegistry()
        assert asyncio.run(registry.send_to_user(uuid4(), {"event": "x"})) == 0

    def test_unregister_and_close_user(self):
        registry = InMemoryConnectionRegistry()
        user_id = uuid4()
        first, second = FakeConnection(), FakeConnection()

        async def scenario():
            await registry.register(user_id, first)
            await registry.register(user_id, second)
            await registry.unregister(user_id, first)
            remaining = registry.connection_count(user_id)
            closed = await registry.close_user(user_id)
            return remaining, closed

        remaining, closed = asyncio.run(scenario())

        assert remaining == 1
        assert closed == 1
        assert second.closed is True
        assert first.closed is False
        assert registry.connection_count(user_id) == 0

    def test_user_ids_match_across_types(self):
        registry = InMemoryConnectionRegistry()
        user_id = uuid4()
        connection = FakeConnection()

        asyncio.run(registry.register(user_id, connection))

        assert registry.connection_count(str(user_id)) == 1
