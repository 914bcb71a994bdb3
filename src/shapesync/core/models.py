"""Core domain models for the shapesync shape log."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import msgspec

from shapesync.core.shapes import Shape, ShapeEnvelope


@dataclass
class Room:
    """A persisted collaborative canvas.

    Attributes:
        id: Integer identifier of the room.
        slug: Human-chosen name, unique per admin.
        admin_id: User id of the room's creator.
        created_at: Timestamp when the room was created.
    """

    id: int
    slug: str
    admin_id: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class ShapeRecord:
    """One durable entry of a room's shape log.

    Attributes:
        id: Store-assigned sequence id; ascending ids are chronological.
        room_id: The room the shape was drawn in.
        user_id: The author of the drawing operation.
        message: Serialized ``{"shape": {...}}`` payload exactly as received.
        created_at: Timestamp when the record was persisted.
    """

    id: int
    room_id: int
    user_id: str
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def parse_shape(self) -> Shape | None:
        """Decode the stored payload into a shape.

        Returns:
            The shape, or None if the stored payload no longer parses.
        """
        try:
            return msgspec.json.decode(self.message, type=ShapeEnvelope).shape
        except msgspec.DecodeError:
            return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "roomId": self.room_id,
            "userId": self.user_id,
            "message": self.message,
            "createdAt": self.created_at.isoformat(),
        }
