"""Database storage backend for shapesync.

This module provides SQLAlchemy-based persistent storage. Components are
imported lazily so that SQLAlchemy is only loaded when a database is used.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shapesync.storage.db.models import RoomModel, ShapeRecordModel
    from shapesync.storage.db.setup import DatabaseManager
    from shapesync.storage.db.storage import DatabaseShapeStore

__all__ = [
    "DatabaseManager",
    "DatabaseShapeStore",
    "RoomModel",
    "ShapeRecordModel",
]

_LAZY_IMPORTS = {
    "DatabaseShapeStore": "shapesync.storage.db.storage",
    "DatabaseManager": "shapesync.storage.db.setup",
    "RoomModel": "shapesync.storage.db.models",
    "ShapeRecordModel": "shapesync.storage.db.models",
}


def __getattr__(name: str) -> object:
    """Lazy import database components."""
    if name in _LAZY_IMPORTS:
        import importlib

        return getattr(importlib.import_module(_LAZY_IMPORTS[name]), name)
    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
