"""Database CLI commands for shapesync.

Adds query helpers for inspecting rooms and shape logs, and a command to
create rooms for local development.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import rich_click as click
from litestar.plugins import CLIPluginProtocol
from rich.console import Console
from rich.table import Table

from shapesync.core.config import ShapeSyncSettings
from shapesync.core.exceptions import StorageError
from shapesync.storage.db.setup import DatabaseManager
from shapesync.storage.db.storage import DatabaseShapeStore

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

console = Console()


def run_with_store(operation: Callable[[DatabaseShapeStore], Awaitable[Any]]) -> Any:
    """Run an async store operation against the configured database.

    The database comes from ShapeSyncSettings, like the application.

    Args:
        operation: Coroutine function receiving the store.

    Returns:
        The operation's result.
    """

    async def _run() -> Any:
        db = DatabaseManager.from_settings(ShapeSyncSettings.from_env())
        await db.init()
        try:
            return await operation(DatabaseShapeStore(db))
        finally:
            await db.close()

    return asyncio.run(_run())


@click.group(name="query", help="Query rooms and shape logs for debugging and inspection.")
def query_group() -> None:
    """Query rooms and shape logs for debugging and inspection."""


@query_group.command(name="rooms", help="List rooms with their shape counts.")
def query_rooms() -> None:
    """List rooms with their shape counts."""

    async def _load(store: DatabaseShapeStore) -> list[tuple[Any, int]]:
        rooms = await store.list_rooms()
        return [(room, await store.count_shape_records(room.id)) for room in rooms]

    try:
        rows = run_with_store(_load)
    except StorageError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1) from e

    table = Table(title=f"Rooms ({len(rows)})")
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Slug", style="cyan")
    table.add_column("Admin", style="green")
    table.add_column("Shapes", style="yellow", justify="right")
    table.add_column("Created", style="magenta")

    for room, count in rows:
        table.add_row(
            str(room.id),
            room.slug,
            room.admin_id,
            str(count),
            room.created_at.strftime("%Y-%m-%d %H:%M") if room.created_at else "-",
        )

    console.print(table)


@query_group.command(name="shapes", help="Show the newest shape records of a room.")
@click.argument("room_id", type=int)
@click.option("--limit", "-l", default=20, help="Number of records to show")
def query_shapes(room_id: int, limit: int) -> None:
    """Show the newest shape records of a room."""
    try:
        records = run_with_store(lambda store: store.list_shape_records(room_id, limit=limit))
    except StorageError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1) from e

    table = Table(title=f"Room {room_id} shapes (showing {len(records)})")
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Kind", style="cyan")
    table.add_column("Author", style="green")
    table.add_column("Created", style="magenta")
    table.add_column("Payload", style="white", overflow="fold")

    for record in records:
        shape = record.parse_shape()
        table.add_row(
            str(record.id),
            shape.kind.value if shape else "[red]unparseable[/red]",
            record.user_id,
            record.created_at.strftime("%Y-%m-%d %H:%M:%S") if record.created_at else "-",
            record.message,
        )

    console.print(table)


@click.group(name="rooms", help="Manage rooms for local development.")
def rooms_group() -> None:
    """Manage rooms for local development."""


@rooms_group.command(name="create", help="Create a room owned by the given admin user id.")
@click.argument("slug")
@click.option("--admin", "-a", "admin_id", required=True, help="User id of the room's admin")
def rooms_create(slug: str, admin_id: str) -> None:
    """Create a room owned by the given admin user id."""
    try:
        room = run_with_store(lambda store: store.create_room(slug, admin_id))
    except StorageError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1) from e

    console.print(f"[green]Created room[/green] {room.slug!r} with id [bold]{room.id}[/bold]")


class ShapeSyncCLIPlugin(CLIPluginProtocol):
    """CLI plugin that adds the shapesync database commands.

    Adds the `query` command group with subcommands:
    - rooms: List rooms with their shape counts
    - shapes: Show the newest shape records of a room

    Adds the `rooms` command group with subcommands:
    - create: Create a room
    """

    def on_cli_init(self, cli: click.Group) -> None:
        """Register the query and rooms command groups."""
        cli.add_command(query_group)
        cli.add_command(rooms_group)
