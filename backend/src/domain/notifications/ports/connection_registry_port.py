"""Connection Registry Port - realtime push to connected clients.

A user may hold several live connections (browser tabs, devices). The
registry fans a payload out to all of them.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict
from uuid import UUID


class ConnectionRegistryPort(ABC):
    """Abstract interface for per-user realtime connections."""

    @abstractmethod
    async def register(self, user_id: UUID, connection: Any) -> None:
        """Track a live connection for a user."""
        pass

    @abstractmethod
    async def unregister(self, user_id: UUID, connection: Any) -> None:
        """Forget a connection (no-op if it is not tracked)."""
        pass

    @abstractmethod
    async def close_user(self, user_id: UUID) -> int:
        """Close and forget every connection of a user.

        Returns:
            int: Number of connections closed
        """
        pass

    @abstractmethod
    async def send_to_user(self, user_id: UUID, payload: Dict[str, Any]) -> int:
        """Push a JSON payload to every live connection of a user.

        Connections that fail to receive are dropped.

        Returns:
            int: Number of connections the payload reached
        """
        pass

    @abstractmethod
    def connection_count(self, user_id: UUID) -> int:
        pass
