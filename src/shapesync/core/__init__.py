"""Core domain models for shapesync."""

from shapesync.core.models import Room, ShapeRecord
from shapesync.core.shapes import (
    Arrow,
    Circle,
    Diamond,
    EraseRequest,
    Line,
    Pencil,
    Point,
    Rectangle,
    Shape,
    ShapeEnvelope,
    shapes_match,
)
from shapesync.core.types import ShapeKind

__all__ = [
    "Arrow",
    "Circle",
    "Diamond",
    "EraseRequest",
    "Line",
    "Pencil",
    "Point",
    "Rectangle",
    "Room",
    "Shape",
    "ShapeEnvelope",
    "ShapeKind",
    "ShapeRecord",
    "shapes_match",
]
