"""Database storage implementation for shapesync."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError

from shapesync.core.exceptions import StorageError
from shapesync.storage.db.models import RoomModel, ShapeRecordModel, record_from_model, room_from_model

if TYPE_CHECKING:
    from collections.abc import Sequence

    from shapesync.core.models import Room, ShapeRecord
    from shapesync.storage.db.setup import DatabaseManager


class DatabaseShapeStore:
    """Async database shape log using SQLAlchemy.

    Each operation runs in its own session from the DatabaseManager and is
    committed before returning, so a record handed back to the caller is
    durable. SQLAlchemy failures surface as StorageError.
    """

    def __init__(self, db: DatabaseManager) -> None:
        """Initialize the store with an initialized database manager.

        Args:
            db: The database manager providing sessions.
        """
        self._db = db

    async def create_room(self, slug: str, admin_id: str) -> Room:
        """Create a room.

        Rooms are owned by the REST layer; this exists for seeding and tests.

        Args:
            slug: Room name.
            admin_id: Creating user's id.

        Returns:
            The created room.

        Raises:
            StorageError: If the room cannot be created.
        """
        try:
            async with self._db.session() as session:
                model = RoomModel(slug=slug, admin_id=admin_id)
                session.add(model)
                await session.flush()
                await session.refresh(model)
                return room_from_model(model)
        except SQLAlchemyError as e:
            msg = f"Failed to create room {slug!r}"
            raise StorageError(msg) from e

    async def list_rooms(self) -> list[Room]:
        """List all rooms, oldest first.

        Returns:
            The rooms.

        Raises:
            StorageError: If the read fails.
        """
        try:
            async with self._db.session() as session:
                result = await session.execute(select(RoomModel).order_by(RoomModel.id))
                return [room_from_model(m) for m in result.scalars().all()]
        except SQLAlchemyError as e:
            msg = "Failed to list rooms"
            raise StorageError(msg) from e

    async def create_shape_record(self, room_id: int, user_id: str, message: str) -> ShapeRecord:
        """Append a shape record to a room's log.

        Args:
            room_id: The room the shape was drawn in.
            user_id: The author of the drawing operation.
            message: The serialized shape payload.

        Returns:
            The committed record.

        Raises:
            StorageError: If the insert fails, e.g. because the room does not exist.
        """
        try:
            async with self._db.session() as session:
                model = ShapeRecordModel(room_id=room_id, user_id=user_id, message=message)
                session.add(model)
                await session.flush()
                await session.refresh(model)
                return record_from_model(model)
        except SQLAlchemyError as e:
            msg = f"Failed to persist shape record for room {room_id}"
            raise StorageError(msg) from e

    async def list_shape_records(self, room_id: int, limit: int | None = None) -> list[ShapeRecord]:
        """List a room's shape records in chronological order.

        Args:
            room_id: The room to read.
            limit: Optional number of newest records to return.

        Returns:
            The records, ordered by ascending id.

        Raises:
            StorageError: If the read fails.
        """
        stmt = select(ShapeRecordModel).where(ShapeRecordModel.room_id == room_id)
        if limit is not None:
            stmt = stmt.order_by(ShapeRecordModel.id.desc()).limit(max(limit, 0))
        else:
            stmt = stmt.order_by(ShapeRecordModel.id)

        try:
            async with self._db.session() as session:
                result = await session.execute(stmt)
                models = result.scalars().all()
        except SQLAlchemyError as e:
            msg = f"Failed to load shape records for room {room_id}"
            raise StorageError(msg) from e

        records = [record_from_model(m) for m in models]
        if limit is not None:
            records.reverse()
        return records

    async def delete_shape_records(self, record_ids: Sequence[int]) -> int:
        """Delete shape records by id in one statement.

        Args:
            record_ids: The ids to delete.

        Returns:
            The number of records deleted.

        Raises:
            StorageError: If the delete fails.
        """
        ids = list(dict.fromkeys(record_ids))
        if not ids:
            return 0

        try:
            async with self._db.session() as session:
                result = await session.execute(delete(ShapeRecordModel).where(ShapeRecordModel.id.in_(ids)))
                return result.rowcount or 0
        except SQLAlchemyError as e:
            msg = f"Failed to delete {len(ids)} shape records"
            raise StorageError(msg) from e

    async def count_shape_records(self, room_id: int) -> int:
        """Count the records in a room's log.

        Args:
            room_id: The room to count.

        Returns:
            The number of records.

        Raises:
            StorageError: If the read fails.
        """
        try:
            async with self._db.session() as session:
                result = await session.execute(
                    select(func.count()).select_from(ShapeRecordModel).where(ShapeRecordModel.room_id == room_id)
                )
                return int(result.scalar_one())
        except SQLAlchemyError as e:
            msg = f"Failed to count shape records for room {room_id}"
            raise StorageError(msg) from e
