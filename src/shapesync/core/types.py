"""Core type definitions for shapesync."""

from __future__ import annotations

from enum import StrEnum


class ShapeKind(StrEnum):
    """Enumeration of the shape kinds a room can hold."""

    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    PENCIL = "pencil"
    DIAMOND = "diamond"
    ARROW = "arrow"
    LINE = "line"
