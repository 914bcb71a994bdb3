"""Storage protocol definition for shapesync."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from shapesync.core.models import ShapeRecord


@runtime_checkable
class ShapeStoreProtocol(Protocol):
    """Protocol defining the durable shape log interface.

    This is the minimal contract the broker needs from a store: append one
    record, read a room's records in order, and delete records by id.
    """

    async def create_shape_record(self, room_id: int, user_id: str, message: str) -> ShapeRecord:
        """Append a shape record to a room's log.

        Args:
            room_id: The room the shape was drawn in.
            user_id: The author of the drawing operation.
            message: The serialized shape payload.

        Returns:
            The persisted record with its assigned id.

        Raises:
            StorageError: If the record cannot be persisted.
        """
        ...

    async def list_shape_records(self, room_id: int, limit: int | None = None) -> list[ShapeRecord]:
        """List a room's shape records in chronological order.

        Args:
            room_id: The room to read.
            limit: If given, only the newest ``limit`` records are returned
                (still oldest first).

        Returns:
            The records, ordered by ascending id.

        Raises:
            StorageError: If the read fails.
        """
        ...

    async def delete_shape_records(self, record_ids: Sequence[int]) -> int:
        """Delete shape records by id in one batch.

        Ids that no longer exist are ignored.

        Args:
            record_ids: The ids to delete.

        Returns:
            The number of records actually deleted.

        Raises:
            StorageError: If the delete fails.
        """
        ...
