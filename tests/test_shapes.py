"""Tests for shape variants and structural equality."""

from __future__ import annotations

import json

import msgspec
import pytest

from shapesync.core.models import ShapeRecord
from shapesync.core.shapes import (
    Arrow,
    Circle,
    Diamond,
    Line,
    Pencil,
    Point,
    Rectangle,
    ShapeEnvelope,
    shapes_match,
)
from shapesync.core.types import ShapeKind


def decode(shape: dict) -> object:
    return msgspec.convert({"shape": shape}, ShapeEnvelope).shape


class TestShapeDecoding:
    """Tests for decoding the six shape kinds."""

    def test_rectangle(self) -> None:
        """Test decoding a rectangle."""
        shape = decode({"type": "rectangle", "x": 1, "y": 2, "width": 3, "height": 4})
        assert shape == Rectangle(x=1, y=2, width=3, height=4)
        assert shape.kind is ShapeKind.RECTANGLE

    def test_circle_uses_centre_spelling(self) -> None:
        """Test that circles use centreX/centreY on the wire."""
        shape = decode({"type": "circle", "centreX": 5, "centreY": 6, "radius": 7})
        assert isinstance(shape, Circle)
        assert (shape.centre_x, shape.centre_y, shape.radius) == (5, 6, 7)

    def test_diamond_uses_center_spelling(self) -> None:
        """Test that diamonds use centerX/centerY on the wire."""
        shape = decode({"type": "diamond", "centerX": 1, "centerY": 1, "width": 2, "height": 2})
        assert isinstance(shape, Diamond)

    def test_pencil_points(self) -> None:
        """Test decoding a pencil path."""
        shape = decode({"type": "pencil", "points": [{"x": 0, "y": 0}, {"x": 1.5, "y": 2}]})
        assert isinstance(shape, Pencil)
        assert shape.points == (Point(0, 0), Point(1.5, 2))

    def test_arrow_and_line_are_distinct(self) -> None:
        """Test that arrow and line decode to different kinds."""
        geometry = {"startX": 0, "startY": 0, "endX": 1, "endY": 1}
        arrow = decode({"type": "arrow", **geometry})
        line = decode({"type": "line", **geometry})
        assert isinstance(arrow, Arrow)
        assert isinstance(line, Line)
        assert not arrow.matches(line)

    def test_client_id_is_optional(self) -> None:
        """Test that the client id may be omitted."""
        shape = decode({"type": "line", "startX": 0, "startY": 0, "endX": 1, "endY": 1})
        assert shape.id is None

    def test_unknown_extra_keys_are_ignored(self) -> None:
        """Test that unknown keys do not invalidate a shape."""
        shape = decode({"type": "circle", "centreX": 0, "centreY": 0, "radius": 1, "strokeColor": "#000"})
        assert isinstance(shape, Circle)

    def test_unknown_type_rejected(self) -> None:
        """Test that an unknown type is rejected."""
        with pytest.raises(msgspec.ValidationError):
            decode({"type": "hexagon", "x": 0})

    def test_missing_field_rejected(self) -> None:
        """Test that a missing geometric field is rejected."""
        with pytest.raises(msgspec.ValidationError):
            decode({"type": "rectangle", "x": 0, "y": 0, "width": 1})

    def test_non_numeric_field_rejected(self) -> None:
        """Test that a non-numeric coordinate is rejected."""
        with pytest.raises(msgspec.ValidationError):
            decode({"type": "circle", "centreX": "0", "centreY": 0, "radius": 1})


class TestStructuralEquality:
    """Tests for the erase matching rule."""

    def test_ids_are_ignored(self) -> None:
        """Test that client ids do not affect matching."""
        assert Line(0, 0, 10, 10, id="a").matches(Line(0, 0, 10, 10, id="b"))
        assert Line(0, 0, 10, 10, id="a").matches(Line(0, 0, 10, 10))

    def test_pencil_same_points_different_ids(self) -> None:
        """Test that pencils with equal point lists match regardless of id."""
        points = (Point(0, 0), Point(1, 1), Point(2, 4))
        assert shapes_match(Pencil(points, id="p1"), Pencil(points, id="p2"))

    def test_pencil_one_coordinate_differs(self) -> None:
        """Test that a single differing coordinate breaks the match."""
        first = Pencil((Point(0, 0), Point(1, 1), Point(2, 4)))
        second = Pencil((Point(0, 0), Point(1, 1), Point(2, 5)))
        assert not shapes_match(first, second)

    def test_pencil_point_count_differs(self) -> None:
        """Test that pencils with different point counts do not match."""
        first = Pencil((Point(0, 0), Point(1, 1)))
        second = Pencil((Point(0, 0), Point(1, 1), Point(1, 1)))
        assert not shapes_match(first, second)

    def test_pencil_point_order_matters(self) -> None:
        """Test that point order is significant."""
        first = Pencil((Point(0, 0), Point(1, 1)))
        second = Pencil((Point(1, 1), Point(0, 0)))
        assert not shapes_match(first, second)

    def test_integers_equal_floats(self) -> None:
        """Test that 10 and 10.0 are the same coordinate."""
        assert Rectangle(0, 0, 10, 10).matches(decode({"type": "rectangle", "x": 0.0, "y": 0, "width": 10.0, "height": 10}))

    def test_different_kinds_never_match(self) -> None:
        """Test that kinds must be equal."""
        assert not Rectangle(0, 0, 1, 1).matches(Diamond(0, 0, 1, 1))


class TestShapeRecord:
    """Tests for the persisted ShapeRecord."""

    def test_parse_shape(self) -> None:
        """Test decoding a stored payload."""
        message = json.dumps({"shape": {"type": "line", "startX": 0, "startY": 0, "endX": 10, "endY": 10}})
        record = ShapeRecord(id=1, room_id=7, user_id="alice", message=message)
        assert record.parse_shape() == Line(0, 0, 10, 10)

    @pytest.mark.parametrize("message", ["not json", '{"shape": {"type": "blob"}}', '{"other": 1}'])
    def test_parse_unparseable_payload(self, message: str) -> None:
        """Test that corrupt payloads decode to None."""
        record = ShapeRecord(id=1, room_id=7, user_id="alice", message=message)
        assert record.parse_shape() is None

    def test_to_dict(self) -> None:
        """Test ShapeRecord serialization."""
        record = ShapeRecord(id=3, room_id=7, user_id="alice", message="{}")
        data = record.to_dict()

        assert data["id"] == 3
        assert data["roomId"] == 7
        assert data["userId"] == "alice"
        assert data["message"] == "{}"
        assert "createdAt" in data
