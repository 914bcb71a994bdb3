"""Storage backends for shapesync."""

from __future__ import annotations

from typing import TYPE_CHECKING

from shapesync.storage.base import ShapeStoreProtocol
from shapesync.storage.memory import InMemoryShapeStore

if TYPE_CHECKING:
    from shapesync.storage.db import DatabaseShapeStore

__all__ = ["DatabaseShapeStore", "InMemoryShapeStore", "ShapeStoreProtocol"]


def __getattr__(name: str) -> object:
    """Lazy import DatabaseShapeStore so SQLAlchemy loads only when needed."""
    if name == "DatabaseShapeStore":
        from shapesync.storage.db import DatabaseShapeStore

        return DatabaseShapeStore
    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
