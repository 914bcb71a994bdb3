"""Litestar plugin for shapesync integration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog
from litestar.di import Provide
from litestar.plugins import InitPluginProtocol

from shapesync.auth.verifier import CredentialVerifier
from shapesync.core.config import ShapeSyncSettings
from shapesync.realtime.broadcast import BroadcastRouter
from shapesync.realtime.handler import ConnectionSupervisor, create_websocket_handler
from shapesync.realtime.heartbeat import Heartbeat
from shapesync.realtime.manager import ConnectionRegistry
from shapesync.services.shape_log import ShapeLog
from shapesync.storage.memory import InMemoryShapeStore
from shapesync.web.router import create_router

if TYPE_CHECKING:
    from litestar import Litestar
    from litestar.config.app import AppConfig

    from shapesync.storage.base import ShapeStoreProtocol

logger = structlog.get_logger(__name__)


@dataclass
class ShapeSyncConfig:
    """Configuration for the ShapeSync plugin.

    Attributes:
        store: Durable shape store. If None, InMemoryShapeStore is used.
        settings: Runtime settings. If None, they are read from the environment.
        enable_api: Whether to mount the HTTP history routes. Defaults to True.
        enable_websocket: Whether to mount the WebSocket endpoint. Defaults to True.
        enable_heartbeat: Whether to run the liveness sweep in the background.
            Defaults to True.
        api_path: Base path for the HTTP routes. Defaults to "/api".
        ws_path: Path of the WebSocket endpoint. Defaults to "/ws".
        dependency_key: Dependency injection key for the ShapeLog service.
            Defaults to "shape_log".
        registry: Optional pre-configured ConnectionRegistry. If None, a new
            one is created.

    Example:
        >>> from shapesync.storage.memory import InMemoryShapeStore
        >>> config = ShapeSyncConfig(store=InMemoryShapeStore(), ws_path="/realtime", enable_heartbeat=False)
    """

    store: ShapeStoreProtocol | None = None
    settings: ShapeSyncSettings | None = None
    enable_api: bool = True
    enable_websocket: bool = True
    enable_heartbeat: bool = True
    api_path: str = "/api"
    ws_path: str = "/ws"
    dependency_key: str = "shape_log"
    registry: ConnectionRegistry | None = field(default=None)


class ShapeSyncPlugin(InitPluginProtocol):
    """Litestar plugin wiring the shape-sync broker into an application.

    On app init the plugin builds the broker's components (store, registry,
    router, shape log, verifier and supervisor), registers them for
    dependency injection under ``shape_log``, ``verifier``,
    ``connection_registry`` and ``supervisor``, mounts the WebSocket endpoint
    and the HTTP history routes, and ties the heartbeat to the application
    lifespan.

    Example:
        >>> from litestar import Litestar
        >>> from shapesync import ShapeSyncPlugin, ShapeSyncConfig
        >>>
        >>> app = Litestar(plugins=[ShapeSyncPlugin(ShapeSyncConfig())])

        Accessing the service in route handlers:

        >>> from litestar import get
        >>> from shapesync.services.shape_log import ShapeLog
        >>>
        >>> @get("/rooms/{room_id:int}/count")
        ... async def count(room_id: int, shape_log: ShapeLog) -> dict:
        ...     return {"count": len(await shape_log.history(room_id))}
    """

    def __init__(self, config: ShapeSyncConfig | None = None) -> None:
        """Initialize the plugin with optional configuration.

        Args:
            config: Plugin configuration. If None, ShapeSyncConfig with default
                values will be used.
        """
        self._config = config or ShapeSyncConfig()
        self._store: ShapeStoreProtocol | None = None
        self._registry: ConnectionRegistry | None = None
        self._shape_log: ShapeLog | None = None
        self._verifier: CredentialVerifier | None = None
        self._supervisor: ConnectionSupervisor | None = None
        self._heartbeat: Heartbeat | None = None

    def on_app_init(self, app_config: AppConfig) -> AppConfig:
        """Build the broker and register it with the application.

        Args:
            app_config: The Litestar application configuration object.

        Returns:
            The modified application configuration.
        """
        settings = self._config.settings or ShapeSyncSettings.from_env()

        self._store = self._config.store or InMemoryShapeStore()
        self._registry = self._config.registry or ConnectionRegistry()
        router = BroadcastRouter(self._registry)
        self._shape_log = ShapeLog(self._store, router)
        self._verifier = CredentialVerifier(settings.jwt_secret, settings.jwt_algorithm)
        self._supervisor = ConnectionSupervisor(self._registry, router, self._shape_log, self._verifier)

        if self._config.enable_heartbeat:
            self._heartbeat = Heartbeat(settings.heartbeat_interval, self._supervisor.sweep)

        def provide_shape_log() -> ShapeLog:
            """Dependency provider for ShapeLog."""
            return self.shape_log

        def provide_verifier() -> CredentialVerifier:
            """Dependency provider for CredentialVerifier."""
            return self.verifier

        def provide_connection_registry() -> ConnectionRegistry:
            """Dependency provider for ConnectionRegistry."""
            return self.registry

        def provide_supervisor() -> ConnectionSupervisor:
            """Dependency provider for ConnectionSupervisor."""
            return self.supervisor

        app_config.dependencies[self._config.dependency_key] = Provide(provide_shape_log, sync_to_thread=False)
        app_config.dependencies["verifier"] = Provide(provide_verifier, sync_to_thread=False)
        app_config.dependencies["connection_registry"] = Provide(provide_connection_registry, sync_to_thread=False)
        app_config.dependencies["supervisor"] = Provide(provide_supervisor, sync_to_thread=False)

        if self._config.enable_api:
            app_config.route_handlers.append(create_router(path=self._config.api_path))

        if self._config.enable_websocket:
            app_config.route_handlers.append(
                create_websocket_handler(path=self._config.ws_path, supervisor=self._supervisor)
            )

        app_config.on_startup.append(self._on_startup)
        app_config.on_shutdown.append(self._on_shutdown)
        return app_config

    async def _on_startup(self, app: Litestar) -> None:
        app.state.connection_registry = self.registry
        if self._heartbeat is not None:
            self._heartbeat.start()
        logger.info(
            "ShapeSync started",
            store=type(self.store).__name__,
            heartbeat_interval=self._heartbeat.interval if self._heartbeat else None,
        )

    async def _on_shutdown(self, app: Litestar) -> None:
        if self._heartbeat is not None:
            await self._heartbeat.stop()

    def _require(self, value: Any, name: str) -> Any:
        if value is None:
            msg = f"Plugin not initialized: {name} is unavailable. Call on_app_init first."
            raise RuntimeError(msg)
        return value

    @property
    def store(self) -> ShapeStoreProtocol:
        """Get the initialized shape store.

        Raises:
            RuntimeError: If the plugin has not been initialized yet.
        """
        return self._require(self._store, "store")

    @property
    def registry(self) -> ConnectionRegistry:
        """Get the connection registry.

        Raises:
            RuntimeError: If the plugin has not been initialized yet.
        """
        return self._require(self._registry, "registry")

    @property
    def shape_log(self) -> ShapeLog:
        """Get the shape log service.

        Raises:
            RuntimeError: If the plugin has not been initialized yet.
        """
        return self._require(self._shape_log, "shape_log")

    @property
    def verifier(self) -> CredentialVerifier:
        """Get the credential verifier.

        Raises:
            RuntimeError: If the plugin has not been initialized yet.
        """
        return self._require(self._verifier, "verifier")

    @property
    def supervisor(self) -> ConnectionSupervisor:
        """Get the connection supervisor.

        Raises:
            RuntimeError: If the plugin has not been initialized yet.
        """
        return self._require(self._supervisor, "supervisor")

    @property
    def heartbeat(self) -> Heartbeat | None:
        """Get the heartbeat, or None when it is disabled."""
        return self._heartbeat
