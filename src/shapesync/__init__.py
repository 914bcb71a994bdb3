"""shapesync: a real-time shape synchronization broker built on Litestar.

Clients of a collaborative drawing tool connect over a WebSocket, watch one or
more rooms, and exchange drawing (``chat``) and ``erase`` operations. The
broker authenticates each connection with a signed bearer credential,
validates every frame, records operations in a durable per-room shape log and
fans them out to the room's watchers in arrival order.

Key Components:
    - Core: shape variants, ShapeRecord, Room
    - Auth: CredentialVerifier
    - Realtime: frame validation, ConnectionRegistry, BroadcastRouter,
      ConnectionSupervisor, Heartbeat
    - Services: ShapeLog (append and erase reconciliation)
    - Storage: ShapeStoreProtocol, InMemoryShapeStore, DatabaseShapeStore
    - Plugin: ShapeSyncPlugin for Litestar integration

Quick Start:
    >>> from litestar import Litestar
    >>> from shapesync import ShapeSyncPlugin, ShapeSyncConfig
    >>>
    >>> app = Litestar(plugins=[ShapeSyncPlugin(ShapeSyncConfig())])
"""

from __future__ import annotations

from shapesync.auth import CredentialVerifier
from shapesync.core import Room, ShapeKind, ShapeRecord
from shapesync.core.config import ShapeSyncSettings
from shapesync.core.exceptions import AuthenticationError, MessageValidationError, ShapeSyncError, StorageError
from shapesync.plugin import ShapeSyncConfig, ShapeSyncPlugin
from shapesync.realtime import BroadcastRouter, ConnectionRegistry, ConnectionSupervisor, Heartbeat, MessageType
from shapesync.services import ShapeLog
from shapesync.storage import InMemoryShapeStore, ShapeStoreProtocol

__all__ = [
    "AuthenticationError",
    "BroadcastRouter",
    "ConnectionRegistry",
    "ConnectionSupervisor",
    "CredentialVerifier",
    "Heartbeat",
    "InMemoryShapeStore",
    "MessageType",
    "MessageValidationError",
    "Room",
    "ShapeKind",
    "ShapeLog",
    "ShapeRecord",
    "ShapeStoreProtocol",
    "ShapeSyncConfig",
    "ShapeSyncError",
    "ShapeSyncPlugin",
    "ShapeSyncSettings",
    "StorageError",
]

__version__ = "0.1.0"
