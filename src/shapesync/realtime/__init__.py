"""Real-time WebSocket module for shapesync.

This module provides the WebSocket side of shape synchronization: frame
validation, the connection registry, room broadcasting, the connection
lifecycle supervisor and the liveness heartbeat.
"""

from __future__ import annotations

from shapesync.realtime.broadcast import BroadcastRouter
from shapesync.realtime.handler import ConnectionSupervisor, create_websocket_handler
from shapesync.realtime.heartbeat import Heartbeat
from shapesync.realtime.manager import Connection, ConnectionRegistry, Departure
from shapesync.realtime.messages import (
    ChatBroadcast,
    EraseBroadcast,
    ErrorMessage,
    MessageType,
    PingMessage,
    UserJoinedMessage,
    UserLeftMessage,
)
from shapesync.realtime.validation import validate_frame

__all__ = [
    "BroadcastRouter",
    "ChatBroadcast",
    "Connection",
    "ConnectionRegistry",
    "ConnectionSupervisor",
    "Departure",
    "EraseBroadcast",
    "ErrorMessage",
    "Heartbeat",
    "MessageType",
    "PingMessage",
    "UserJoinedMessage",
    "UserLeftMessage",
    "create_websocket_handler",
    "validate_frame",
]
