"""Validation of inbound WebSocket frames.

Every frame is checked against the closed set of recognized message shapes
before anything else happens. ``chat`` and ``erase`` frames carry a second,
serialized payload in their ``message`` field which is validated as well, so
a command that leaves this module is safe to persist and fan out.
"""

from __future__ import annotations

from typing import Any

import msgspec

from shapesync.core.exceptions import MessageValidationError
from shapesync.core.shapes import EraseRequest, Shape, ShapeEnvelope
from shapesync.realtime.messages import (
    ChatFrame,
    Command,
    Draw,
    Erase,
    EraseFrame,
    InboundFrame,
    JoinRoom,
    JoinRoomFrame,
    LeaveRoom,
    LeaveRoomFrame,
    Pong,
)


def _decode_json(raw: str | bytes, code: str, what: str) -> Any:
    try:
        return msgspec.json.decode(raw)
    except msgspec.DecodeError as e:
        raise MessageValidationError(code, f"{what} is not valid JSON: {e}") from e


def _room_id(value: int | str) -> int:
    if isinstance(value, int):
        return value
    if value.isascii() and value.isdigit() and int(value) >= 1:
        return int(value)
    raise MessageValidationError("invalid_message", f"Invalid roomId: {value!r}")


def validate_frame(raw: str | bytes) -> Command:
    """Parse and validate one inbound frame.

    Args:
        raw: The frame as received from the transport.

    Returns:
        The validated command.

    Raises:
        MessageValidationError: If the frame is not JSON, matches no known
            message, or carries an invalid shape payload.
    """
    data = _decode_json(raw, "invalid_json", "Frame")

    try:
        frame = msgspec.convert(data, InboundFrame)
    except msgspec.ValidationError as e:
        raise MessageValidationError("invalid_message", f"Unrecognized message: {e}") from e

    if isinstance(frame, JoinRoomFrame):
        return JoinRoom(room_id=_room_id(frame.room_id))
    if isinstance(frame, LeaveRoomFrame):
        return LeaveRoom(room_id=_room_id(frame.room_id))
    if isinstance(frame, ChatFrame):
        return Draw(
            room_id=_room_id(frame.room_id),
            message=frame.message,
            shape=parse_shape_payload(frame.message),
        )
    if isinstance(frame, EraseFrame):
        return Erase(
            room_id=_room_id(frame.room_id),
            message=frame.message,
            shapes=tuple(parse_erase_payload(frame.message)),
        )
    return Pong()


def parse_shape_payload(message: str) -> Shape:
    """Validate the ``message`` of a ``chat`` frame.

    Args:
        message: Serialized ``{"shape": {...}}`` envelope.

    Returns:
        The decoded shape.

    Raises:
        MessageValidationError: If the envelope or shape is invalid.
    """
    data = _decode_json(message, "invalid_shape", "Shape payload")
    try:
        return msgspec.convert(data, ShapeEnvelope).shape
    except msgspec.ValidationError as e:
        raise MessageValidationError("invalid_shape", f"Invalid shape: {e}") from e


def parse_erase_payload(message: str) -> list[Shape]:
    """Validate the ``message`` of an ``erase`` frame.

    Every descriptor must name a known shape ``type`` and carry that kind's
    geometric fields; one bad descriptor rejects the whole request.

    Args:
        message: Serialized ``{"shapesToErase": [...]}`` payload.

    Returns:
        The decoded shape descriptors.

    Raises:
        MessageValidationError: If the payload or any descriptor is invalid.
    """
    data = _decode_json(message, "invalid_erase", "Erase payload")
    try:
        return msgspec.convert(data, EraseRequest).shapes_to_erase
    except msgspec.ValidationError as e:
        raise MessageValidationError("invalid_erase", f"Invalid erase request: {e}") from e
