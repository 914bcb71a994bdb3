"""Health check endpoints for shapesync.

Provides /health and /ready endpoints for container orchestration
and load balancer health checks.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

from litestar import Controller, get
from sqlalchemy import text

if TYPE_CHECKING:
    from litestar import Request

    from shapesync.realtime.manager import ConnectionRegistry


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of an individual component."""

    name: str
    status: HealthStatus
    message: str | None = None
    latency_ms: float | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class HealthResponse:
    """Health check response."""

    status: HealthStatus
    version: str = "0.1.0"
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    components: list[ComponentHealth] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "status": self.status.value,
            "version": self.version,
            "timestamp": self.timestamp,
            "components": [
                {
                    "name": c.name,
                    "status": c.status.value,
                    "message": c.message,
                    "latency_ms": c.latency_ms,
                    **c.details,
                }
                for c in self.components
            ],
        }


class HealthController(Controller):
    """Health check controller.

    Provides endpoints for liveness and readiness checks. The realtime
    component reports how many WebSocket connections and watched rooms the
    broker currently holds.
    """

    path = ""
    include_in_schema: ClassVar[bool] = True
    tags: ClassVar[list[str]] = ["Health"]

    @get("/health")
    async def health(self, request: Request) -> dict:
        """Liveness check endpoint.

        Returns:
            Health status with component details.
        """
        components = [
            ComponentHealth(
                name="application",
                status=HealthStatus.HEALTHY,
                message="Application is running",
            )
        ]

        registry = _registry(request)
        if registry is not None:
            components.append(
                ComponentHealth(
                    name="realtime",
                    status=HealthStatus.HEALTHY,
                    message="Accepting WebSocket connections",
                    details={
                        "connections": registry.total_connections,
                        "rooms": registry.active_rooms,
                    },
                )
            )

        db_health = await self._check_database(request)
        if db_health:
            components.append(db_health)

        statuses = [c.status for c in components]
        if HealthStatus.UNHEALTHY in statuses:
            overall_status = HealthStatus.UNHEALTHY
        elif HealthStatus.DEGRADED in statuses:
            overall_status = HealthStatus.DEGRADED
        else:
            overall_status = HealthStatus.HEALTHY

        return HealthResponse(status=overall_status, components=components).to_dict()

    @get("/ready")
    async def ready(self, request: Request) -> dict:
        """Readiness check endpoint.

        Unlike /health, this checks if all dependencies are available.

        Returns:
            Readiness status with individual check results and realtime counts.
        """
        checks: dict[str, bool] = {"application": True}

        registry = _registry(request)
        checks["realtime"] = registry is not None

        db_ready = await self._check_database_ready(request)
        if db_ready is not None:
            checks["database"] = db_ready

        response: dict[str, Any] = {
            "ready": all(checks.values()),
            "timestamp": datetime.now(UTC).isoformat(),
            "checks": checks,
        }
        if registry is not None:
            response["connections"] = registry.total_connections
            response["rooms"] = registry.active_rooms
        return response

    async def _check_database(self, request: Request) -> ComponentHealth | None:
        """Check database health."""
        db_manager = getattr(request.app.state, "db_manager", None)
        if db_manager is None:
            return None

        try:
            start = time.perf_counter()
            async with db_manager.session() as session:
                await session.execute(text("SELECT 1"))
            latency = (time.perf_counter() - start) * 1000
        except Exception as e:  # noqa: BLE001
            return ComponentHealth(
                name="database",
                status=HealthStatus.UNHEALTHY,
                message=f"Database error: {e!s}",
            )

        return ComponentHealth(
            name="database",
            status=HealthStatus.HEALTHY,
            message="Database connection successful",
            latency_ms=round(latency, 2),
        )

    async def _check_database_ready(self, request: Request) -> bool | None:
        """Check if database is ready."""
        db_manager = getattr(request.app.state, "db_manager", None)
        if db_manager is None:
            return None

        try:
            async with db_manager.session() as session:
                await session.execute(text("SELECT 1"))
        except Exception:  # noqa: BLE001
            return False
        return True


def _registry(request: Request) -> ConnectionRegistry | None:
    return getattr(request.app.state, "connection_registry", None)
