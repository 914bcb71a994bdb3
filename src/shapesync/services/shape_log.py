"""Shape log service: persistence and erase reconciliation for room canvases."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import structlog

from shapesync.core.exceptions import StorageError
from shapesync.realtime.messages import ChatBroadcast, EraseBroadcast

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Sequence

    from shapesync.core.models import ShapeRecord
    from shapesync.core.shapes import Shape
    from shapesync.core.types import ShapeKind
    from shapesync.realtime.broadcast import BroadcastRouter
    from shapesync.storage.base import ShapeStoreProtocol

logger = structlog.get_logger(__name__)

DEFAULT_HISTORY_LIMIT = 1000


class RoomSequencer:
    """Serialize work per room in arrival order.

    Each room gets an ``asyncio.Lock``; waiters are woken in FIFO order, so
    operations on one room complete in the order they were submitted while
    different rooms proceed independently. A room's lock is dropped once no
    operation holds or awaits it.
    """

    def __init__(self) -> None:
        """Initialize with no rooms."""
        self._locks: dict[int, asyncio.Lock] = {}
        self._pending: defaultdict[int, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, room_id: int) -> AsyncIterator[None]:
        """Hold the room's turn for the duration of the block.

        Args:
            room_id: The room to serialize on.
        """
        lock = self._locks.setdefault(room_id, asyncio.Lock())
        self._pending[room_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._pending[room_id] -= 1
            if not self._pending[room_id]:
                del self._pending[room_id]
                self._locks.pop(room_id, None)

    @property
    def active_rooms(self) -> int:
        """Get the number of rooms with pending work."""
        return len(self._locks)


class ShapeLog:
    """Append and erase shapes in a room's durable log, then fan out.

    An operation is broadcast only after the store has committed it. Appends
    and erases of the same room go through a ``RoomSequencer`` so every member
    observes the room's broadcasts in arrival order.
    """

    def __init__(self, store: ShapeStoreProtocol, router: BroadcastRouter) -> None:
        """Initialize the shape log.

        Args:
            store: Durable store implementing ShapeStoreProtocol.
            router: Router used to fan out committed operations.
        """
        self._store = store
        self._router = router
        self._sequencer = RoomSequencer()

    @property
    def store(self) -> ShapeStoreProtocol:
        """Get the underlying store."""
        return self._store

    async def append(self, room_id: int, author_id: str, message: str) -> ShapeRecord:
        """Persist one drawing operation and broadcast it to the room.

        The broadcast includes the author's own connection.

        Args:
            room_id: The room drawn in.
            author_id: The authenticated author.
            message: The validated ``{"shape": ...}`` payload.

        Returns:
            The persisted record.

        Raises:
            StorageError: If the record could not be persisted; nothing is
                broadcast in that case.
        """
        async with self._sequencer.hold(room_id):
            record = await self._guard(
                self._store.create_shape_record(room_id, author_id, message),
                f"Failed to persist shape for room {room_id}",
            )
            delivered = await self._router.broadcast(room_id, ChatBroadcast(room_id, message).to_dict())

        logger.debug(
            "Shape appended",
            room_id=room_id,
            record_id=record.id,
            user_id=author_id,
            delivered=delivered,
        )
        return record

    async def erase(self, room_id: int, descriptors: Sequence[Shape], message: str) -> int:
        """Delete every logged shape matching a descriptor and broadcast the erase.

        The room's full log is reloaded on every call so records appended by
        other clients since the requester last synced are considered. The
        erase is broadcast even when nothing matched.

        Args:
            room_id: The room to reconcile.
            descriptors: Validated shape descriptors.
            message: The ``{"shapesToErase": [...]}`` payload to fan out.

        Returns:
            The number of records deleted.

        Raises:
            StorageError: If the log could not be read or the delete failed;
                nothing is broadcast in that case.
        """
        async with self._sequencer.hold(room_id):
            records = await self._guard(
                self._store.list_shape_records(room_id),
                f"Failed to load shape log for room {room_id}",
            )
            record_ids = find_matching_records(records, descriptors)

            deleted = 0
            if record_ids:
                deleted = await self._guard(
                    self._store.delete_shape_records(record_ids),
                    f"Failed to delete shapes in room {room_id}",
                )
            delivered = await self._router.broadcast(room_id, EraseBroadcast(room_id, message).to_dict())

        logger.info(
            "Shapes erased",
            room_id=room_id,
            descriptors=len(descriptors),
            scanned=len(records),
            deleted=deleted,
            delivered=delivered,
        )
        return deleted

    async def history(self, room_id: int, limit: int = DEFAULT_HISTORY_LIMIT) -> list[ShapeRecord]:
        """Get the newest records of a room's log, oldest first.

        Args:
            room_id: The room to read.
            limit: Maximum number of records.

        Returns:
            The records in chronological order.

        Raises:
            StorageError: If the read fails.
        """
        return await self._guard(
            self._store.list_shape_records(room_id, limit=limit),
            f"Failed to load shape log for room {room_id}",
        )

    @staticmethod
    async def _guard(operation: Awaitable[Any], message: str) -> Any:
        try:
            return await operation
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(message) from e


def find_matching_records(records: Sequence[ShapeRecord], descriptors: Sequence[Shape]) -> list[int]:
    """Find the ids of records structurally equal to any descriptor.

    Records are bucketed by shape kind first so each descriptor is only
    compared against records of its own kind. Records whose payload no longer
    parses are skipped.

    Args:
        records: The room's log, oldest first.
        descriptors: The shapes to match.

    Returns:
        Matching record ids in log order, each id once.
    """
    by_kind: dict[ShapeKind, list[tuple[int, Shape]]] = defaultdict(list)
    for record in records:
        shape = record.parse_shape()
        if shape is None:
            logger.warning("Skipping unparseable shape record", record_id=record.id, room_id=record.room_id)
            continue
        by_kind[shape.kind].append((record.id, shape))

    matched: set[int] = set()
    for descriptor in descriptors:
        for record_id, shape in by_kind.get(descriptor.kind, ()):
            if record_id not in matched and shape.matches(descriptor):
                matched.add(record_id)

    return [record.id for record in records if record.id in matched]
