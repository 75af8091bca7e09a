"""In-memory realtime connection registry.

Holds the live WebSocket connections of each user in this process. A
multi-process deployment needs a shared implementation of
ConnectionRegistryPort (e.g. Redis pub/sub) instead.
"""

import logging
from collections import defaultdict
from typing import Any, Dict, List, Set
from uuid import UUID

from domain.notifications.ports import ConnectionRegistryPort
from observability.metrics import notifications_sent_total

logger = logging.getLogger(__name__)


class InMemoryConnectionRegistry(ConnectionRegistryPort):
    """ConnectionRegistryPort backed by a dict of connection sets.

    Connections are duck-typed: anything with async ``send_json(payload)``
    and ``close()`` works (starlette WebSocket does).
    """

    def __init__(self):
        # Mutated only between awaits, so the event loop never sees a partial update
        self._connections: Dict[str, Set[Any]] = defaultdict(set)

    @staticmethod
    def _key(user_id) -> str:
        return str(user_id)

    async def register(self, user_id: UUID, connection: Any) -> None:
        self._connections[self._key(user_id)].add(connection)
        logger.info(f"Realtime connection registered: user_id={user_id}")

    async def unregister(self, user_id: UUID, connection: Any) -> None:
        connections = self._connections.get(self._key(user_id))
        if not connections:
            return
        connections.discard(connection)
        if not connections:
            del self._connections[self._key(user_id)]

    async def close_user(self, user_id: UUID) -> int:
        connections = self._connections.pop(self._key(user_id), set())

        for connection in connections:
            try:
                await connection.close()
            except Exception as e:
                logger.debug(f"Closing connection failed: user_id={user_id}, error={e}")
        return len(connections)

    async def send_to_user(self, user_id: UUID, payload: Dict[str, Any]) -> int:
        connections: List[Any] = list(self._connections.get(self._key(user_id), ()))

        delivered = 0
        dead = []
        for connection in connections:
            try:
                await connection.send_json(payload)
                delivered += 1
            except Exception as e:
                logger.info(f"Dropping dead realtime connection: user_id={user_id}, error={e}")
                dead.append(connection)

        for connection in dead:
            await self.unregister(user_id, connection)

        if connections:
            notifications_sent_total.labels(
                channel="realtime", outcome="success" if delivered else "error"
            ).inc()
        return delivered

    def connection_count(self, user_id: UUID) -> int:
        return len(self._connections.get(self._key(user_id), ()))


# Process-wide registry used by the WebSocket endpoint and the dispatcher
connection_registry = InMemoryConnectionRegistry()


def get_connection_registry() -> ConnectionRegistryPort:
    """FastAPI dependency returning the process-wide registry."""
    return connection_registry
