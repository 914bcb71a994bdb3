"""Room fan-out of outbound messages."""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from shapesync.realtime.manager import Connection, ConnectionRegistry

logger = structlog.get_logger(__name__)


class BroadcastRouter:
    """Deliver payloads to the members of a room.

    Membership is read from the registry at the moment of the call, so a
    connection that left or closed while the caller was awaiting I/O is not
    written to. Delivery is best effort: a failed write is logged and
    isolated to its recipient.
    """

    def __init__(self, registry: ConnectionRegistry) -> None:
        """Initialize the router.

        Args:
            registry: The connection registry to read memberships from.
        """
        self._registry = registry

    async def broadcast(
        self,
        room_id: int,
        message: dict[str, Any],
        exclude: Connection | None = None,
    ) -> int:
        """Broadcast a message to all open members of a room.

        Args:
            room_id: The room to broadcast to.
            message: The message to send.
            exclude: Optional connection to skip, typically the sender.

        Returns:
            The number of members the message was delivered to.
        """
        recipients = [
            member
            for member in self._registry.members_of(room_id)
            if member is not exclude and member.is_open
        ]
        if not recipients:
            return 0

        json_message = json.dumps(message)
        results = await asyncio.gather(*(self._deliver(member, json_message) for member in recipients))
        return sum(results)

    async def send(self, connection: Connection, message: dict[str, Any]) -> bool:
        """Send a message to a single connection.

        Args:
            connection: The target connection.
            message: The message to send.

        Returns:
            True if sent successfully, False otherwise.
        """
        if not connection.is_open:
            return False
        return await self._deliver(connection, json.dumps(message))

    async def _deliver(self, connection: Connection, message: str) -> bool:
        try:
            await connection.socket.send_text(message)
        except Exception:
            logger.exception(
                "Failed to send message",
                connection_id=connection.id,
                user_id=connection.user_id,
            )
            return False
        return True
