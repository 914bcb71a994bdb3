"""Service layer for shapesync."""

from __future__ import annotations

from shapesync.services.shape_log import DEFAULT_HISTORY_LIMIT, RoomSequencer, ShapeLog, find_matching_records

__all__ = ["DEFAULT_HISTORY_LIMIT", "RoomSequencer", "ShapeLog", "find_matching_records"]
