"""Command line extensions for the Litestar CLI."""

from shapesync.cli.database import ShapeSyncCLIPlugin, query_group, rooms_group

__all__ = ["ShapeSyncCLIPlugin", "query_group", "rooms_group"]
