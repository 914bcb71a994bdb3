"""Tests for the shape log service and erase reconciliation."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from shapesync.core.exceptions import StorageError
from shapesync.core.models import ShapeRecord
from shapesync.core.shapes import Circle, Line, Pencil, Point, Rectangle
from shapesync.realtime.manager import ConnectionRegistry
from shapesync.services.shape_log import RoomSequencer, ShapeLog, find_matching_records
from shapesync.storage.memory import InMemoryShapeStore

LINE = {"type": "line", "startX": 0, "startY": 0, "endX": 10, "endY": 10}
CIRCLE = {"type": "circle", "centreX": 5, "centreY": 5, "radius": 3}


def payload(shape: dict) -> str:
    return json.dumps({"shape": shape})


def erase_payload(*shapes: dict) -> str:
    return json.dumps({"shapesToErase": list(shapes)})


def record(record_id: int, shape: dict) -> ShapeRecord:
    return ShapeRecord(id=record_id, room_id=7, user_id="alice", message=payload(shape))


@pytest.fixture
def member(registry: ConnectionRegistry, make_socket: Callable[..., MagicMock]) -> Any:
    """A connection watching room 7."""
    connection = registry.add(make_socket(), "bob")
    registry.join_room(connection, 7)
    return connection


class TestAppend:
    """Tests for ShapeLog.append."""

    async def test_persists_then_broadcasts(
        self,
        shape_log: ShapeLog,
        store: InMemoryShapeStore,
        member: Any,
        sent: Callable[[MagicMock], list[dict[str, Any]]],
    ) -> None:
        """Test that the record is stored and fanned out verbatim."""
        message = payload(LINE)

        record = await shape_log.append(7, "alice", message)

        assert record.room_id == 7
        assert record.user_id == "alice"
        assert record.message == message
        assert await store.list_shape_records(7) == [record]
        assert sent(member.socket) == [{"type": "chat", "message": message, "roomId": 7}]

    async def test_records_are_chronological(self, shape_log: ShapeLog) -> None:
        """Test that ids ascend with append order."""
        first = await shape_log.append(7, "alice", payload(LINE))
        second = await shape_log.append(7, "alice", payload(CIRCLE))

        assert first.id < second.id
        assert [r.id for r in await shape_log.history(7)] == [first.id, second.id]

    async def test_store_failure_is_not_broadcast(
        self,
        router: Any,
        member: Any,
    ) -> None:
        """Test that a failed write raises StorageError and sends nothing."""
        store = MagicMock()
        store.create_shape_record = AsyncMock(side_effect=ConnectionError("database is down"))
        shape_log = ShapeLog(store, router)

        with pytest.raises(StorageError):
            await shape_log.append(7, "alice", payload(LINE))

        member.socket.send_text.assert_not_awaited()

    async def test_storage_error_passes_through(self, router: Any) -> None:
        """Test that StorageError from the store is not rewrapped."""
        original = StorageError("disk full")
        store = MagicMock()
        store.create_shape_record = AsyncMock(side_effect=original)

        with pytest.raises(StorageError) as exc_info:
            await ShapeLog(store, router).append(7, "alice", payload(LINE))

        assert exc_info.value is original


class TestErase:
    """Tests for ShapeLog.erase."""

    async def test_erase_matching_shape(
        self,
        shape_log: ShapeLog,
        member: Any,
        sent: Callable[[MagicMock], list[dict[str, Any]]],
    ) -> None:
        """Test that a structurally equal record is deleted and the erase broadcast."""
        await shape_log.append(7, "alice", payload(LINE))
        kept = await shape_log.append(7, "alice", payload(CIRCLE))
        message = erase_payload({**LINE, "id": "client-side-id"})

        deleted = await shape_log.erase(7, [Line(0, 0, 10, 10, id="client-side-id")], message)

        assert deleted == 1
        assert [r.id for r in await shape_log.history(7)] == [kept.id]
        assert sent(member.socket)[-1] == {"type": "erase", "message": message, "roomId": 7}

    async def test_erase_without_match_still_broadcasts(
        self,
        shape_log: ShapeLog,
        member: Any,
        sent: Callable[[MagicMock], list[dict[str, Any]]],
    ) -> None:
        """Test that an erase matching nothing deletes nothing but is fanned out."""
        await shape_log.append(7, "alice", payload(LINE))
        message = erase_payload(CIRCLE)

        deleted = await shape_log.erase(7, [Circle(5, 5, 3)], message)

        assert deleted == 0
        assert len(await shape_log.history(7)) == 1
        assert [m["type"] for m in sent(member.socket)] == ["chat", "erase"]

    async def test_erase_removes_every_duplicate(self, shape_log: ShapeLog) -> None:
        """Test that every record equal to a descriptor is deleted."""
        for _ in range(3):
            await shape_log.append(7, "alice", payload(LINE))

        assert await shape_log.erase(7, [Line(0, 0, 10, 10)], erase_payload(LINE)) == 3
        assert await shape_log.history(7) == []

    async def test_erase_is_scoped_to_room(self, shape_log: ShapeLog) -> None:
        """Test that records of other rooms are untouched."""
        await shape_log.append(8, "alice", payload(LINE))

        assert await shape_log.erase(7, [Line(0, 0, 10, 10)], erase_payload(LINE)) == 0
        assert len(await shape_log.history(8)) == 1

    async def test_erase_sees_other_authors(self, shape_log: ShapeLog) -> None:
        """Test that shapes drawn by anyone in the room can be erased."""
        await shape_log.append(7, "alice", payload(LINE))

        assert await shape_log.erase(7, [Line(0, 0, 10, 10)], erase_payload(LINE)) == 1

    async def test_erase_read_failure(self, router: Any, member: Any) -> None:
        """Test that a failed log read raises and broadcasts nothing."""
        store = MagicMock()
        store.list_shape_records = AsyncMock(side_effect=OSError("unreachable"))

        with pytest.raises(StorageError):
            await ShapeLog(store, router).erase(7, [Line(0, 0, 10, 10)], erase_payload(LINE))

        member.socket.send_text.assert_not_awaited()

    async def test_erase_delete_failure(self, router: Any, member: Any) -> None:
        """Test that a failed delete raises and broadcasts nothing."""
        store = MagicMock()
        store.list_shape_records = AsyncMock(return_value=[record(1, LINE)])
        store.delete_shape_records = AsyncMock(side_effect=OSError("unreachable"))

        with pytest.raises(StorageError):
            await ShapeLog(store, router).erase(7, [Line(0, 0, 10, 10)], erase_payload(LINE))

        member.socket.send_text.assert_not_awaited()

    async def test_no_delete_call_without_matches(self, router: Any) -> None:
        """Test that the store is not asked to delete an empty batch."""
        store = MagicMock()
        store.list_shape_records = AsyncMock(return_value=[record(1, LINE)])
        store.delete_shape_records = AsyncMock(return_value=0)

        await ShapeLog(store, router).erase(7, [Circle(5, 5, 3)], erase_payload(CIRCLE))

        store.delete_shape_records.assert_not_awaited()


class TestFindMatchingRecords:
    """Tests for find_matching_records."""

    def test_matches_across_kinds(self) -> None:
        """Test that each descriptor only matches its own kind."""
        records = [
            record(1, LINE),
            record(2, CIRCLE),
            record(3, {"type": "arrow", "startX": 0, "startY": 0, "endX": 10, "endY": 10}),
        ]

        assert find_matching_records(records, [Line(0, 0, 10, 10), Circle(5, 5, 3)]) == [1, 2]

    def test_each_id_once(self) -> None:
        """Test that overlapping descriptors do not duplicate ids."""
        records = [record(1, LINE), record(2, LINE)]
        descriptors = [Line(0, 0, 10, 10), Line(0, 0, 10, 10, id="x")]

        assert find_matching_records(records, descriptors) == [1, 2]

    def test_pencil_exact_points(self) -> None:
        """Test pencil matching on the full point list."""
        pencil = {"type": "pencil", "points": [{"x": 0, "y": 0}, {"x": 3, "y": 4}]}
        records = [record(1, pencil)]

        assert find_matching_records(records, [Pencil((Point(0, 0), Point(3, 4)))]) == [1]
        assert find_matching_records(records, [Pencil((Point(0, 0), Point(3, 5)))]) == []

    def test_unparseable_record_is_skipped(self) -> None:
        """Test that a corrupt record does not abort the erase."""
        records = [
            ShapeRecord(id=1, room_id=7, user_id="alice", message="corrupt"),
            record(2, LINE),
        ]

        assert find_matching_records(records, [Line(0, 0, 10, 10)]) == [2]

    def test_no_descriptors(self) -> None:
        """Test that an empty erase matches nothing."""
        assert find_matching_records([record(1, LINE)], []) == []

    def test_no_records(self) -> None:
        """Test erasing from an empty log."""
        assert find_matching_records([], [Rectangle(0, 0, 1, 1)]) == []


class TestRoomSequencer:
    """Tests for per-room ordering."""

    async def test_same_room_runs_in_arrival_order(self) -> None:
        """Test that operations on one room never interleave."""
        sequencer = RoomSequencer()
        events: list[str] = []

        async def operation(name: str, delay: float) -> None:
            async with sequencer.hold(7):
                events.append(f"{name}:start")
                await asyncio.sleep(delay)
                events.append(f"{name}:end")

        await asyncio.gather(operation("first", 0.02), operation("second", 0))

        assert events == ["first:start", "first:end", "second:start", "second:end"]

    async def test_different_rooms_run_concurrently(self) -> None:
        """Test that rooms do not block each other."""
        sequencer = RoomSequencer()
        events: list[str] = []

        async def operation(room_id: int, delay: float) -> None:
            async with sequencer.hold(room_id):
                events.append(f"{room_id}:start")
                await asyncio.sleep(delay)
                events.append(f"{room_id}:end")

        await asyncio.gather(operation(1, 0.02), operation(2, 0))

        assert events == ["1:start", "2:start", "2:end", "1:end"]

    async def test_idle_rooms_are_released(self) -> None:
        """Test that locks are dropped once a room has no pending work."""
        sequencer = RoomSequencer()

        async with sequencer.hold(7):
            assert sequencer.active_rooms == 1

        assert sequencer.active_rooms == 0

    async def test_released_after_error(self) -> None:
        """Test that a failing operation releases the room."""
        sequencer = RoomSequencer()

        with pytest.raises(RuntimeError):
            async with sequencer.hold(7):
                raise RuntimeError("boom")

        assert sequencer.active_rooms == 0

    async def test_concurrent_appends_broadcast_in_order(
        self,
        shape_log: ShapeLog,
        member: Any,
        sent: Callable[[MagicMock], list[dict[str, Any]]],
    ) -> None:
        """Test that members see a room's broadcasts in persistence order."""
        messages = [payload({**LINE, "endX": n}) for n in range(5)]

        await asyncio.gather(*(shape_log.append(7, "alice", m) for m in messages))

        history = [r.message for r in await shape_log.history(7)]
        assert [m["message"] for m in sent(member.socket)] == history
