"""Main Litestar application for shapesync.

This module provides the application factory and the configured app instance
for running the broker as a standalone service::

    uvicorn shapesync.app:app
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from advanced_alchemy.extensions.litestar import AlembicAsyncConfig, SQLAlchemyPlugin
from advanced_alchemy.extensions.litestar.plugins.init.config.asyncio import SQLAlchemyAsyncConfig
from litestar import Litestar
from litestar.openapi import OpenAPIConfig
from litestar.openapi.plugins import ScalarRenderPlugin, SwaggerRenderPlugin

from shapesync import ShapeSyncConfig, ShapeSyncPlugin
from shapesync.cli import ShapeSyncCLIPlugin
from shapesync.core.config import ShapeSyncSettings
from shapesync.core.error_handling import get_exception_handlers
from shapesync.core.logging import configure_logging, get_middleware
from shapesync.storage.db.setup import DatabaseManager
from shapesync.storage.db.storage import DatabaseShapeStore
from shapesync.web.health import HealthController

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable

    from shapesync.storage.base import ShapeStoreProtocol

logger = structlog.get_logger(__name__)


def database_lifespan(db_manager: DatabaseManager) -> Callable[[Litestar], AsyncGenerator[None, None]]:
    """Create a lifespan handler that owns the database connection.

    Initialization failures are logged rather than raised, so the service
    still starts; shape operations then answer with persistence errors and
    /ready reports the database as unavailable.

    Args:
        db_manager: The manager backing the shape store.

    Returns:
        An async context manager factory for Litestar's ``lifespan``.
    """

    @asynccontextmanager
    async def lifespan(app: Litestar) -> AsyncGenerator[None, None]:
        app.state.db_manager = db_manager
        try:
            await db_manager.init()
            logger.info("Database initialized", url=db_manager.engine.url.render_as_string(hide_password=True))
        except Exception as e:  # noqa: BLE001
            logger.error("Failed to initialize database", error=str(e))

        try:
            yield
        finally:
            await db_manager.close()

    return lifespan


def create_sqlalchemy_plugin(settings: ShapeSyncSettings) -> SQLAlchemyPlugin:
    """Create the SQLAlchemy plugin used by the ``database`` migration commands.

    Args:
        settings: Settings carrying the database URL.

    Returns:
        The configured plugin.
    """
    config = SQLAlchemyAsyncConfig(
        connection_string=settings.database_url,
        alembic_config=AlembicAsyncConfig(
            script_location="src/shapesync/storage/db/migrations",
            version_table_name="alembic_version",
        ),
    )
    return SQLAlchemyPlugin(config=config)


def create_app(
    *,
    store: ShapeStoreProtocol | None = None,
    settings: ShapeSyncSettings | None = None,
    enable_api: bool = True,
    enable_websocket: bool = True,
    enable_heartbeat: bool = True,
    database_url: str | None = None,
) -> Litestar:
    """Create and configure the Litestar application.

    Args:
        store: Shape store to use. If None, a database-backed store is
            created for ``database_url``.
        settings: Runtime settings. If None, they are read from the environment.
        enable_api: Whether to enable the HTTP history routes.
        enable_websocket: Whether to enable the WebSocket endpoint.
        enable_heartbeat: Whether to run the liveness sweep.
        database_url: Database URL for the default store. If None,
            ``settings.database_url`` is used.

    Returns:
        Configured Litestar application instance.
    """
    settings = settings or ShapeSyncSettings.from_env()
    configure_logging(debug=settings.debug, json_logs=settings.json_logs)

    lifespan = []
    if store is None:
        db_manager = DatabaseManager(database_url or settings.database_url, echo=settings.database_echo)
        store = DatabaseShapeStore(db_manager)
        lifespan.append(database_lifespan(db_manager))

    return Litestar(
        route_handlers=[HealthController],
        plugins=[
            create_sqlalchemy_plugin(settings),
            ShapeSyncCLIPlugin(),
            ShapeSyncPlugin(
                ShapeSyncConfig(
                    store=store,
                    settings=settings,
                    enable_api=enable_api,
                    enable_websocket=enable_websocket,
                    enable_heartbeat=enable_heartbeat,
                    api_path="/api",
                    ws_path="/ws",
                )
            ),
        ],
        debug=settings.debug,
        lifespan=lifespan,
        middleware=get_middleware(),
        exception_handlers=get_exception_handlers(),
        openapi_config=OpenAPIConfig(
            title="shapesync API",
            version="0.1.0",
            description="Real-time shape synchronization broker for collaborative drawing rooms",
            path="/schema",
            render_plugins=[ScalarRenderPlugin(path="/"), SwaggerRenderPlugin(path="/swagger")],
            use_handler_docstrings=True,
        ),
    )


# Default application instance for uvicorn
app = create_app()
