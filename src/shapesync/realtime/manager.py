"""Connection registry for WebSocket sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from litestar import WebSocket

logger = structlog.get_logger(__name__)


@dataclass(eq=False)
class Connection:
    """One authenticated WebSocket session.

    Connections compare and hash by identity; two sessions of the same user
    are two distinct connections.
    """

    socket: WebSocket
    user_id: str
    id: str = field(default_factory=lambda: uuid4().hex)
    rooms: set[int] = field(default_factory=set)
    alive: bool = True
    is_open: bool = True
    connected_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "connection_id": self.id,
            "user_id": self.user_id,
            "rooms": sorted(self.rooms),
            "alive": self.alive,
            "connected_at": self.connected_at.isoformat(),
        }


@dataclass(frozen=True)
class Departure:
    """A connection removed by a liveness sweep and the rooms it watched."""

    connection: Connection
    rooms: frozenset[int]


class ConnectionRegistry:
    """Table of live connections and the rooms each one watches.

    The registry is the sole owner of connection state. Its methods are
    synchronous: on a single event loop they run between suspension points,
    so no lock is needed and readers always see a consistent membership.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._connections: dict[str, Connection] = {}
        self._rooms: dict[int, dict[str, Connection]] = {}

    def add(self, socket: WebSocket, user_id: str) -> Connection:
        """Register a newly authenticated connection.

        Args:
            socket: The accepted WebSocket.
            user_id: The authenticated user id.

        Returns:
            The new connection, watching no rooms and marked alive.
        """
        connection = Connection(socket=socket, user_id=user_id)
        self._connections[connection.id] = connection

        logger.info(
            "Connection registered",
            connection_id=connection.id,
            user_id=user_id,
            total_connections=len(self._connections),
        )
        return connection

    def remove(self, connection: Connection) -> frozenset[int] | None:
        """Remove a connection and all of its room memberships.

        Args:
            connection: The connection to remove.

        Returns:
            The rooms the connection was watching, or None if it had already
            been removed.
        """
        if self._connections.pop(connection.id, None) is None:
            return None

        rooms = frozenset(connection.rooms)
        for room_id in rooms:
            self._discard_member(room_id, connection)
        connection.rooms.clear()
        connection.is_open = False

        logger.info(
            "Connection removed",
            connection_id=connection.id,
            user_id=connection.user_id,
            rooms=sorted(rooms),
            total_connections=len(self._connections),
        )
        return rooms

    def __contains__(self, connection: object) -> bool:
        return isinstance(connection, Connection) and self._connections.get(connection.id) is connection

    def rooms_of(self, connection: Connection) -> frozenset[int]:
        """Get the rooms a connection is watching.

        Args:
            connection: The connection to query.

        Returns:
            The watched room ids.
        """
        return frozenset(connection.rooms)

    def join_room(self, connection: Connection, room_id: int) -> bool:
        """Start watching a room.

        Args:
            connection: A registered connection.
            room_id: The room to watch.

        Returns:
            True if the connection was not already watching the room.
        """
        if connection not in self or room_id in connection.rooms:
            return False

        connection.rooms.add(room_id)
        self._rooms.setdefault(room_id, {})[connection.id] = connection

        logger.debug(
            "Joined room",
            connection_id=connection.id,
            user_id=connection.user_id,
            room_id=room_id,
            members=len(self._rooms[room_id]),
        )
        return True

    def leave_room(self, connection: Connection, room_id: int) -> bool:
        """Stop watching a room.

        Args:
            connection: A registered connection.
            room_id: The room to leave.

        Returns:
            True if the connection was watching the room.
        """
        if room_id not in connection.rooms:
            return False

        connection.rooms.discard(room_id)
        self._discard_member(room_id, connection)

        logger.debug(
            "Left room",
            connection_id=connection.id,
            user_id=connection.user_id,
            room_id=room_id,
        )
        return True

    def members_of(self, room_id: int) -> list[Connection]:
        """Get the connections currently watching a room.

        Args:
            room_id: The room to query.

        Returns:
            A snapshot list of the watching connections.
        """
        return list(self._rooms.get(room_id, {}).values())

    def connections(self) -> list[Connection]:
        """Get a snapshot of all registered connections."""
        return list(self._connections.values())

    def mark_alive(self, connection: Connection) -> None:
        """Record that a connection has shown signs of life.

        Args:
            connection: The connection that responded.
        """
        connection.alive = True

    def sweep(self) -> list[Departure]:
        """Remove connections that stayed silent since the previous sweep.

        Survivors have their liveness flag cleared and must respond before
        the next sweep to stay registered.

        Returns:
            The removed connections with the rooms each one watched.
        """
        departures: list[Departure] = []
        for connection in self.connections():
            if connection.alive:
                connection.alive = False
                continue
            rooms = self.remove(connection)
            if rooms is not None:
                departures.append(Departure(connection=connection, rooms=rooms))

        if departures:
            logger.info(
                "Liveness sweep removed connections",
                removed=len(departures),
                remaining=len(self._connections),
            )
        return departures

    def _discard_member(self, room_id: int, connection: Connection) -> None:
        members = self._rooms.get(room_id)
        if members is None:
            return
        members.pop(connection.id, None)
        if not members:
            del self._rooms[room_id]

    @property
    def active_rooms(self) -> int:
        """Get the number of rooms with at least one watcher."""
        return len(self._rooms)

    @property
    def total_connections(self) -> int:
        """Get the total number of registered connections."""
        return len(self._connections)
