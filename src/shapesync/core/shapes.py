"""Shape variants drawn on a room canvas.

Every shape is a tagged ``msgspec`` struct discriminated by its ``type`` field,
so a payload either decodes into exactly one variant or fails validation.
Field names are camelCase on the wire and snake_case in Python.

Two shapes denote the same persisted drawing when they are of the same kind
and all geometric fields are equal; the optional client ``id`` is ignored
because older records were stored without one.
"""

from __future__ import annotations

from typing import Any

import msgspec

from shapesync.core.types import ShapeKind


class Point(msgspec.Struct, frozen=True):
    """A single pencil sample.

    Attributes:
        x: X-coordinate.
        y: Y-coordinate.
    """

    x: float
    y: float


class BaseShape(msgspec.Struct, frozen=True, tag_field="type", rename="camel"):
    """Common behaviour of all shape variants."""

    @property
    def kind(self) -> ShapeKind:
        """Get the shape kind from the struct tag."""
        return ShapeKind(self.__struct_config__.tag)

    def geometry(self) -> tuple[Any, ...]:
        """Return the geometric fields in declaration order, without the client id."""
        return tuple(getattr(self, name) for name in self.__struct_fields__ if name != "id")

    def matches(self, other: BaseShape) -> bool:
        """Check structural equality with another shape.

        Args:
            other: The shape to compare against.

        Returns:
            True if both shapes are the same kind with equal geometry.
        """
        return type(self) is type(other) and self.geometry() == other.geometry()


class Rectangle(BaseShape, frozen=True, tag=ShapeKind.RECTANGLE.value):
    """Axis-aligned rectangle anchored at its top-left corner."""

    x: float
    y: float
    width: float
    height: float
    id: str | None = None


class Circle(BaseShape, frozen=True, tag=ShapeKind.CIRCLE.value):
    """Circle given by its centre and radius."""

    centre_x: float
    centre_y: float
    radius: float
    id: str | None = None


class Pencil(BaseShape, frozen=True, tag=ShapeKind.PENCIL.value):
    """Freehand path made of ordered points."""

    points: tuple[Point, ...]
    id: str | None = None


class Diamond(BaseShape, frozen=True, tag=ShapeKind.DIAMOND.value):
    """Diamond given by its center and bounding box size."""

    center_x: float
    center_y: float
    width: float
    height: float
    id: str | None = None


class Arrow(BaseShape, frozen=True, tag=ShapeKind.ARROW.value):
    """Arrow from a start point to an end point."""

    start_x: float
    start_y: float
    end_x: float
    end_y: float
    id: str | None = None


class Line(BaseShape, frozen=True, tag=ShapeKind.LINE.value):
    """Straight segment from a start point to an end point."""

    start_x: float
    start_y: float
    end_x: float
    end_y: float
    id: str | None = None


Shape = Rectangle | Circle | Pencil | Diamond | Arrow | Line


class ShapeEnvelope(msgspec.Struct):
    """Serialized body of a ``chat`` message: ``{"shape": {...}}``."""

    shape: Shape


class EraseRequest(msgspec.Struct, rename="camel"):
    """Serialized body of an ``erase`` message: ``{"shapesToErase": [...]}``."""

    shapes_to_erase: list[Shape]


def shapes_match(first: BaseShape, second: BaseShape) -> bool:
    """Check whether two shapes denote the same drawing.

    Args:
        first: A shape.
        second: Another shape.

    Returns:
        True if both are the same kind with equal geometry.
    """
    return first.matches(second)
