"""Pytest configuration and fixtures for shapesync tests."""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from jose import jwt
from litestar import Litestar
from litestar.testing import TestClient

from shapesync.auth.verifier import CredentialVerifier
from shapesync.core.config import ShapeSyncSettings
from shapesync.core.error_handling import get_exception_handlers
from shapesync.plugin import ShapeSyncConfig, ShapeSyncPlugin
from shapesync.realtime.broadcast import BroadcastRouter
from shapesync.realtime.handler import ConnectionSupervisor
from shapesync.realtime.manager import ConnectionRegistry
from shapesync.services.shape_log import ShapeLog
from shapesync.storage.memory import InMemoryShapeStore
from shapesync.web.health import HealthController

JWT_SECRET = "test-secret"


# Credential fixtures


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Create signed credentials for tests."""

    def _make(
        user_id: Any = "user-1",
        *,
        claim: str = "userId",
        secret: str = JWT_SECRET,
        expires_in: int = 3600,
        algorithm: str = "HS256",
    ) -> str:
        claims: dict[str, Any] = {"exp": int(time.time()) + expires_in}
        if user_id is not None:
            claims[claim] = user_id
        return jwt.encode(claims, secret, algorithm=algorithm)

    return _make


@pytest.fixture
def verifier() -> CredentialVerifier:
    """Create a verifier using the test secret."""
    return CredentialVerifier(JWT_SECRET)


# Broker fixtures


@pytest.fixture
def store() -> InMemoryShapeStore:
    """Create a fresh InMemoryShapeStore for each test."""
    return InMemoryShapeStore()


@pytest.fixture
def registry() -> ConnectionRegistry:
    """Create an empty connection registry."""
    return ConnectionRegistry()


@pytest.fixture
def router(registry: ConnectionRegistry) -> BroadcastRouter:
    """Create a broadcast router over the registry."""
    return BroadcastRouter(registry)


@pytest.fixture
def shape_log(store: InMemoryShapeStore, router: BroadcastRouter) -> ShapeLog:
    """Create a shape log over the in-memory store."""
    return ShapeLog(store, router)


@pytest.fixture
def supervisor(
    registry: ConnectionRegistry,
    router: BroadcastRouter,
    shape_log: ShapeLog,
    verifier: CredentialVerifier,
) -> ConnectionSupervisor:
    """Create a connection supervisor wired to the test components."""
    return ConnectionSupervisor(registry, router, shape_log, verifier)


# WebSocket fixtures


@pytest.fixture
def make_socket() -> Callable[..., MagicMock]:
    """Create mock WebSockets.

    The mock delivers ``frames`` as ASGI receive messages (``str`` as text,
    ``bytes`` as binary), then a disconnect, and records everything the
    server sends through ``send_text``.
    """

    def _make(frames: tuple[str | bytes, ...] = (), token: str | None = None) -> MagicMock:
        socket = MagicMock()
        socket.accept = AsyncMock()
        socket.close = AsyncMock()
        socket.send_text = AsyncMock()
        socket.send_json = AsyncMock()
        socket.query_params = {"token": token} if token is not None else {}

        messages: list[Any] = [
            {"type": "websocket.receive", "bytes": item}
            if isinstance(item, bytes)
            else {"type": "websocket.receive", "text": item}
            for item in frames
        ]
        messages.append({"type": "websocket.disconnect", "code": 1000})
        socket.receive = AsyncMock(side_effect=messages)
        return socket

    return _make


@pytest.fixture
def sent() -> Callable[[MagicMock], list[dict[str, Any]]]:
    """Decode every text frame sent to a mock WebSocket."""

    def _sent(socket: MagicMock) -> list[dict[str, Any]]:
        return [json.loads(call.args[0]) for call in socket.send_text.call_args_list]

    return _sent


# App and client fixtures


@pytest.fixture
def settings() -> ShapeSyncSettings:
    """Create settings that do not depend on the environment."""
    return ShapeSyncSettings(
        jwt_secret=JWT_SECRET,
        jwt_algorithm="HS256",
        heartbeat_interval=30.0,
        debug=False,
        json_logs=False,
        database_url="sqlite+aiosqlite:///:memory:",
        database_echo=False,
    )


@pytest.fixture
def plugin(store: InMemoryShapeStore, settings: ShapeSyncSettings) -> ShapeSyncPlugin:
    """Create a ShapeSyncPlugin over the in-memory store."""
    return ShapeSyncPlugin(ShapeSyncConfig(store=store, settings=settings, enable_heartbeat=False))


@pytest.fixture
def app(plugin: ShapeSyncPlugin) -> Litestar:
    """Create a Litestar app with ShapeSyncPlugin for testing."""
    return Litestar(
        route_handlers=[HealthController],
        plugins=[plugin],
        exception_handlers=get_exception_handlers(),
    )


@pytest.fixture
def client(app: Litestar) -> TestClient[Litestar]:
    """Create a test client for the app."""
    with TestClient(app=app) as client:
        yield client
