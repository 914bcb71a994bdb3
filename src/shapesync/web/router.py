"""Router configuration for the shapesync HTTP API."""

from __future__ import annotations

from litestar import Router

from shapesync.web.controllers import RoomShapeController


def create_router(path: str = "/api") -> Router:
    """Create the shapesync API router.

    Args:
        path: The base path for all API routes. Defaults to "/api".

    Returns:
        A configured Litestar Router instance.

    Example:
        >>> router = create_router("/api/v1")
        >>> # GET /api/v1/rooms/{room_id}/shapes
    """
    return Router(
        path=path,
        route_handlers=[RoomShapeController],
    )
