"""Minimal example showing shapesync usage with Litestar.

This example demonstrates how to embed the shape-sync broker into an existing
Litestar application through the plugin system.

The application will:
    - Keep the shape log in an InMemoryShapeStore (lost on restart)
    - Serve the WebSocket endpoint at /realtime
    - Mount the shape history endpoint at /api
    - Enable dependency injection for ShapeLog in route handlers

Running the Application:
    JWT_SECRET=example-secret python examples/app.py

Then connect a WebSocket client with a credential signed by JWT_SECRET:
    ws://127.0.0.1:8000/realtime?token=<jwt>

Example frames:
    {"type": "join_room", "roomId": 1}
    {"type": "chat", "roomId": 1, "message": "{\\"shape\\": {\\"type\\": \\"line\\", ...}}"}

Example API Usage:
    # Read the shapes drawn in room 1
    curl http://127.0.0.1:8000/api/rooms/1/shapes -H "Authorization: Bearer <jwt>"

    # Count them with the injected service
    curl http://127.0.0.1:8000/rooms/1/count
"""

from __future__ import annotations

from typing import Annotated

from litestar import Litestar, get
from litestar.params import Dependency

from shapesync import ShapeSyncConfig, ShapeSyncPlugin
from shapesync.services.shape_log import ShapeLog


@get("/rooms/{room_id:int}/count")
async def count_shapes(
    room_id: int,
    shape_log: Annotated[ShapeLog, Dependency(skip_validation=True)],
) -> dict[str, int]:
    """Count the shapes currently drawn in a room."""
    return {"roomId": room_id, "count": len(await shape_log.history(room_id))}


# Create the Litestar app with the shapesync plugin
app = Litestar(
    route_handlers=[count_shapes],
    plugins=[
        ShapeSyncPlugin(
            ShapeSyncConfig(
                # Use InMemoryShapeStore (default)
                store=None,
                # Serve the WebSocket on a custom path
                ws_path="/realtime",
                # Mount history routes at /api
                api_path="/api",
                # Use "shape_log" as the dependency key
                dependency_key="shape_log",
            )
        )
    ],
    debug=True,
)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="127.0.0.1",
        port=8000,
        log_level="info",
    )
