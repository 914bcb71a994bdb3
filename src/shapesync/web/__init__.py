"""Web layer for the shapesync HTTP API."""

from shapesync.web.controllers import RoomShapeController, bearer_token, provide_user_id
from shapesync.web.health import HealthController
from shapesync.web.router import create_router

__all__ = ["HealthController", "RoomShapeController", "bearer_token", "create_router", "provide_user_id"]
