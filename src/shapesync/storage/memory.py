"""In-memory storage implementation for shapesync."""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import replace
from typing import TYPE_CHECKING

from shapesync.core.models import ShapeRecord

if TYPE_CHECKING:
    from collections.abc import Sequence


class InMemoryShapeStore:
    """In-memory shape log.

    Records live in per-room lists in insertion order, with ids drawn from a
    single global counter so they stay unique and ascending across rooms.
    Copies are returned so callers cannot mutate stored records.

    Note:
        All data is lost when the application stops. This store is suitable
        for development, testing, or ephemeral sessions.
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._records: dict[int, list[ShapeRecord]] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def create_shape_record(self, room_id: int, user_id: str, message: str) -> ShapeRecord:
        """Append a shape record to a room's log.

        Args:
            room_id: The room the shape was drawn in.
            user_id: The author of the drawing operation.
            message: The serialized shape payload.

        Returns:
            A copy of the stored record.
        """
        async with self._lock:
            record = ShapeRecord(id=next(self._ids), room_id=room_id, user_id=user_id, message=message)
            self._records.setdefault(room_id, []).append(record)
            return replace(record)

    async def list_shape_records(self, room_id: int, limit: int | None = None) -> list[ShapeRecord]:
        """List a room's shape records in chronological order.

        Args:
            room_id: The room to read.
            limit: Optional number of newest records to return.

        Returns:
            Copies of the records, oldest first.
        """
        async with self._lock:
            records = self._records.get(room_id, [])
            if limit is not None:
                records = records[-limit:] if limit > 0 else []
            return [replace(record) for record in records]

    async def delete_shape_records(self, record_ids: Sequence[int]) -> int:
        """Delete shape records by id.

        Args:
            record_ids: The ids to delete.

        Returns:
            The number of records deleted.
        """
        wanted = set(record_ids)
        if not wanted:
            return 0

        deleted = 0
        async with self._lock:
            for room_id, records in list(self._records.items()):
                kept = [record for record in records if record.id not in wanted]
                deleted += len(records) - len(kept)
                if kept:
                    self._records[room_id] = kept
                else:
                    del self._records[room_id]
        return deleted
