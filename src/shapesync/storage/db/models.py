"""SQLAlchemy models for shapesync database storage."""

from __future__ import annotations

from advanced_alchemy.base import BigIntAuditBase
from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shapesync.core.models import Room, ShapeRecord


class RoomModel(BigIntAuditBase):
    """SQLAlchemy model for rooms.

    Rooms are created by the REST layer; the broker only references them so
    that every shape record belongs to an existing room.

    Attributes:
        id: Integer primary key (from BigIntAuditBase).
        slug: Human-chosen room name, unique per admin.
        admin_id: User id of the room's creator.
        shape_records: The room's shape log.
        created_at: Creation timestamp (from BigIntAuditBase).
        updated_at: Last update timestamp (from BigIntAuditBase).
    """

    __tablename__ = "rooms"
    __table_args__ = (UniqueConstraint("slug", "admin_id", name="uq_rooms_slug_admin"),)

    slug: Mapped[str] = mapped_column(String(255))
    admin_id: Mapped[str] = mapped_column(String(64), index=True)

    shape_records: Mapped[list[ShapeRecordModel]] = relationship(
        "ShapeRecordModel",
        back_populates="room",
        cascade="all, delete-orphan",
        lazy="noload",
    )


class ShapeRecordModel(BigIntAuditBase):
    """SQLAlchemy model for shape log entries.

    The payload is stored verbatim as text so that erase reconciliation can
    compare exactly what clients sent.

    Attributes:
        id: Integer primary key; ascending ids are chronological.
        room_id: Foreign key to the owning room.
        user_id: The author of the drawing operation.
        message: Serialized ``{"shape": {...}}`` payload.
    """

    __tablename__ = "shape_records"

    room_id: Mapped[int] = mapped_column(ForeignKey("rooms.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    message: Mapped[str] = mapped_column(Text)

    room: Mapped[RoomModel] = relationship("RoomModel", back_populates="shape_records")


def record_from_model(model: ShapeRecordModel) -> ShapeRecord:
    """Convert a ShapeRecordModel to a domain ShapeRecord.

    Args:
        model: SQLAlchemy ShapeRecordModel instance.

    Returns:
        Domain ShapeRecord dataclass instance.
    """
    return ShapeRecord(
        id=model.id,
        room_id=model.room_id,
        user_id=model.user_id,
        message=model.message,
        created_at=model.created_at,
    )


def room_from_model(model: RoomModel) -> Room:
    """Convert a RoomModel to a domain Room.

    Args:
        model: SQLAlchemy RoomModel instance.

    Returns:
        Domain Room dataclass instance.
    """
    return Room(
        id=model.id,
        slug=model.slug,
        admin_id=model.admin_id,
        created_at=model.created_at,
    )
