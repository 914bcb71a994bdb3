"""WebSocket message types and schemas for real-time shape sync."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any

import msgspec

from shapesync.core.shapes import Shape


class MessageType(str, Enum):
    """Types of WebSocket messages."""

    # Client -> Server
    JOIN_ROOM = "join_room"
    LEAVE_ROOM = "leave_room"
    PONG = "pong"

    # Both directions
    CHAT = "chat"
    ERASE = "erase"

    # Server -> Client
    USER_JOINED = "user_joined"
    USER_LEFT = "user_left"
    PING = "ping"
    ERROR = "error"


# Inbound wire frames. Room ids arrive as numbers or numeric strings.

RoomIdField = Annotated[int, msgspec.Meta(ge=1)] | str


class _Frame(msgspec.Struct, tag_field="type", rename="camel"):
    pass


class JoinRoomFrame(_Frame, tag=MessageType.JOIN_ROOM.value):
    room_id: RoomIdField


class LeaveRoomFrame(_Frame, tag=MessageType.LEAVE_ROOM.value):
    room_id: RoomIdField


class ChatFrame(_Frame, tag=MessageType.CHAT.value):
    room_id: RoomIdField
    message: str


class EraseFrame(_Frame, tag=MessageType.ERASE.value):
    room_id: RoomIdField
    message: str


class PongFrame(_Frame, tag=MessageType.PONG.value):
    pass


InboundFrame = JoinRoomFrame | LeaveRoomFrame | ChatFrame | EraseFrame | PongFrame


# Validated commands handed to the supervisor.


@dataclass(frozen=True)
class JoinRoom:
    """Start watching a room."""

    room_id: int


@dataclass(frozen=True)
class LeaveRoom:
    """Stop watching a room."""

    room_id: int


@dataclass(frozen=True)
class Draw:
    """Append one shape to a room's log.

    Attributes:
        room_id: Target room.
        message: The serialized ``{"shape": ...}`` payload, kept verbatim for
            persistence and fan-out.
        shape: The decoded shape.
    """

    room_id: int
    message: str
    shape: Shape


@dataclass(frozen=True)
class Erase:
    """Remove every logged shape matching one of the descriptors.

    Attributes:
        room_id: Target room.
        message: The serialized ``{"shapesToErase": [...]}`` payload.
        shapes: The decoded descriptors.
    """

    room_id: int
    message: str
    shapes: tuple[Shape, ...]


@dataclass(frozen=True)
class Pong:
    """Heartbeat acknowledgement."""


Command = JoinRoom | LeaveRoom | Draw | Erase | Pong


# Outbound messages.


@dataclass
class ChatBroadcast:
    """Fan-out of a persisted drawing operation."""

    room_id: int
    message: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": MessageType.CHAT.value,
            "message": self.message,
            "roomId": self.room_id,
        }


@dataclass
class EraseBroadcast:
    """Fan-out of an erase reconciliation."""

    room_id: int
    message: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": MessageType.ERASE.value,
            "message": self.message,
            "roomId": self.room_id,
        }


@dataclass
class UserJoinedMessage:
    """Sent to a room when a connection starts watching it."""

    room_id: int
    user_id: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": MessageType.USER_JOINED.value,
            "userId": self.user_id,
            "roomId": self.room_id,
        }


@dataclass
class UserLeftMessage:
    """Sent to a room when a connection stops watching it or disconnects."""

    room_id: int
    user_id: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": MessageType.USER_LEFT.value,
            "userId": self.user_id,
            "roomId": self.room_id,
        }


@dataclass
class PingMessage:
    """Liveness ping; clients answer with a ``pong`` frame."""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"type": MessageType.PING.value}


@dataclass
class ErrorMessage:
    """Message for error responses."""

    code: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": MessageType.ERROR.value,
            "code": self.code,
            "message": self.message,
        }
