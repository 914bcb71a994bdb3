"""WebSocket handler for real-time shape synchronization."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog
from litestar import Router, WebSocket, websocket

from shapesync.core.exceptions import MessageValidationError, StorageError
from shapesync.realtime.messages import (
    Draw,
    Erase,
    ErrorMessage,
    JoinRoom,
    LeaveRoom,
    PingMessage,
    Pong,
    UserJoinedMessage,
    UserLeftMessage,
)
from shapesync.realtime.validation import validate_frame

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from shapesync.auth.verifier import CredentialVerifier
    from shapesync.realtime.broadcast import BroadcastRouter
    from shapesync.realtime.manager import Connection, ConnectionRegistry
    from shapesync.services.shape_log import ShapeLog

logger = structlog.get_logger(__name__)

# Application close codes sent before a connection is registered.
CLOSE_MISSING_TOKEN = 4000
CLOSE_AUTH_FAILED = 4001
# Standard "going away" code used when a silent connection is evicted.
CLOSE_LIVENESS_TIMEOUT = 1001


async def receive_frames(socket: WebSocket) -> AsyncIterator[str | bytes]:
    """Yield inbound frames until the client disconnects.

    Text and binary frames are both passed through unchanged; the validator
    decodes either.

    Args:
        socket: An accepted WebSocket.

    Yields:
        The payload of each data frame.
    """
    while True:
        message = await socket.receive()
        if message["type"] == "websocket.disconnect":
            return
        if message["type"] != "websocket.receive":
            continue
        text = message.get("text")
        yield text if text is not None else message.get("bytes") or b""


class ConnectionSupervisor:
    """Drive each WebSocket through accept, authenticate, serve and teardown.

    A connection is registered only after its credential has been verified.
    Every inbound frame counts as a sign of life, is validated and then
    dispatched to the registry (join/leave) or the shape log (chat/erase).
    Problems with a single frame are answered with an ``error`` frame and
    never close the connection. Teardown removes the connection from the
    registry and tells every room it watched that the user left; it runs at
    most once per connection.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        router: BroadcastRouter,
        shape_log: ShapeLog,
        verifier: CredentialVerifier,
    ) -> None:
        """Initialize the supervisor.

        Args:
            registry: The connection registry.
            router: The room broadcast router.
            shape_log: The shape log service.
            verifier: The credential verifier.
        """
        self._registry = registry
        self._router = router
        self._shape_log = shape_log
        self._verifier = verifier
        self._handlers = {
            JoinRoom: self._handle_join,
            LeaveRoom: self._handle_leave,
            Draw: self._handle_draw,
            Erase: self._handle_erase,
            Pong: self._handle_pong,
        }

    @property
    def registry(self) -> ConnectionRegistry:
        """Get the connection registry."""
        return self._registry

    async def handle_connection(self, socket: WebSocket) -> None:
        """Serve one WebSocket until it closes.

        The socket is accepted before the credential is checked so that the
        application close code reaches the client.

        Args:
            socket: The incoming WebSocket.
        """
        await socket.accept()

        token = socket.query_params.get("token")
        if not token:
            logger.info("WebSocket rejected", reason="missing_token")
            await self._close(socket, CLOSE_MISSING_TOKEN, "Missing token")
            return

        user_id = self._verifier.verify(token)
        if user_id is None:
            logger.info("WebSocket rejected", reason="authentication_failed")
            await self._close(socket, CLOSE_AUTH_FAILED, "Authentication failed")
            return

        connection = self._registry.add(socket, user_id)
        with structlog.contextvars.bound_contextvars(connection_id=connection.id, user_id=user_id):
            try:
                async for raw in receive_frames(socket):
                    await self.handle_frame(connection, raw)
            except Exception:
                logger.exception("WebSocket error")
            finally:
                await self.disconnect(connection)

    async def handle_frame(self, connection: Connection, raw: str | bytes) -> None:
        """Validate and dispatch one inbound frame.

        Args:
            connection: The sending connection.
            raw: The frame as received.
        """
        self._registry.mark_alive(connection)

        try:
            command = validate_frame(raw)
        except MessageValidationError as e:
            logger.info("Invalid frame", code=e.code, error=e.message)
            await self._send_error(connection, e.code, e.message)
            return

        try:
            await self._handlers[type(command)](connection, command)
        except StorageError:
            logger.exception("Persistence failed", command=type(command).__name__)
            await self._send_error(connection, "persistence_error", "The operation could not be saved")
        except Exception:
            logger.exception("Error handling frame", command=type(command).__name__)
            await self._send_error(connection, "internal_error", "Internal server error")

    async def disconnect(self, connection: Connection) -> bool:
        """Tear a connection down and notify the rooms it watched.

        Args:
            connection: The connection to remove.

        Returns:
            True if this call removed the connection, False if it was
            already gone.
        """
        rooms = self._registry.remove(connection)
        if rooms is None:
            return False

        await self._announce_departure(connection, rooms)
        logger.info(
            "Connection closed",
            connection_id=connection.id,
            user_id=connection.user_id,
            rooms=sorted(rooms),
        )
        return True

    async def sweep(self) -> int:
        """Evict silent connections and ping the rest.

        A connection that has not sent anything since the previous sweep is
        closed with code 1001 and its rooms receive ``user_left``. Every
        survivor gets a ``ping`` and must answer before the next sweep.

        Returns:
            The number of evicted connections.
        """
        departures = self._registry.sweep()
        for departure in departures:
            connection = departure.connection
            logger.info(
                "Evicting unresponsive connection",
                connection_id=connection.id,
                user_id=connection.user_id,
            )
            await self._close(connection.socket, CLOSE_LIVENESS_TIMEOUT, "Liveness timeout")
            await self._announce_departure(connection, departure.rooms)

        ping = PingMessage().to_dict()
        await asyncio.gather(*(self._router.send(connection, ping) for connection in self._registry.connections()))
        return len(departures)

    # Command handlers

    async def _handle_join(self, connection: Connection, command: JoinRoom) -> None:
        if not self._registry.join_room(connection, command.room_id):
            return
        await self._router.broadcast(
            command.room_id,
            UserJoinedMessage(command.room_id, connection.user_id).to_dict(),
            exclude=connection,
        )

    async def _handle_leave(self, connection: Connection, command: LeaveRoom) -> None:
        if not self._registry.leave_room(connection, command.room_id):
            return
        await self._router.broadcast(
            command.room_id,
            UserLeftMessage(command.room_id, connection.user_id).to_dict(),
        )

    async def _handle_draw(self, connection: Connection, command: Draw) -> None:
        await self._shape_log.append(command.room_id, connection.user_id, command.message)

    async def _handle_erase(self, connection: Connection, command: Erase) -> None:
        await self._shape_log.erase(command.room_id, command.shapes, command.message)

    async def _handle_pong(self, connection: Connection, command: Pong) -> None:
        # Liveness was already recorded when the frame arrived.
        pass

    # Helpers

    async def _announce_departure(self, connection: Connection, rooms: frozenset[int]) -> None:
        for room_id in sorted(rooms):
            await self._router.broadcast(room_id, UserLeftMessage(room_id, connection.user_id).to_dict())

    async def _send_error(self, connection: Connection, code: str, message: str) -> None:
        await self._router.send(connection, ErrorMessage(code=code, message=message).to_dict())

    async def _close(self, socket: WebSocket, code: int, reason: str) -> None:
        try:
            await socket.close(code=code, reason=reason)
        except Exception:
            # The transport may already be gone.
            logger.debug("Failed to close WebSocket", code=code, exc_info=True)


def create_websocket_handler(path: str, supervisor: ConnectionSupervisor) -> Router:
    """Create a WebSocket router for shape synchronization.

    Args:
        path: Path of the WebSocket endpoint.
        supervisor: The connection supervisor serving each socket.

    Returns:
        A Litestar Router with the WebSocket handler.
    """

    @websocket(path="/")
    async def shape_sync_websocket(socket: WebSocket) -> None:
        """WebSocket endpoint for shape synchronization.

        The bearer credential is passed as the ``token`` query parameter.

        Args:
            socket: The WebSocket connection.
        """
        await supervisor.handle_connection(socket)

    return Router(path=path, route_handlers=[shape_sync_websocket], tags=["WebSocket"])
