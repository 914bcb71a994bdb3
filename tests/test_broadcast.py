"""Tests for room fan-out."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

from shapesync.realtime.broadcast import BroadcastRouter
from shapesync.realtime.manager import ConnectionRegistry


class TestBroadcast:
    """Tests for BroadcastRouter.broadcast."""

    async def test_delivers_to_every_member(
        self,
        registry: ConnectionRegistry,
        router: BroadcastRouter,
        make_socket: Callable[..., MagicMock],
        sent: Callable[[MagicMock], list[dict[str, Any]]],
    ) -> None:
        """Test that all members of the room receive the message."""
        alice = registry.add(make_socket(), "alice")
        bob = registry.add(make_socket(), "bob")
        registry.join_room(alice, 7)
        registry.join_room(bob, 7)

        delivered = await router.broadcast(7, {"type": "ping"})

        assert delivered == 2
        assert sent(alice.socket) == [{"type": "ping"}]
        assert sent(bob.socket) == [{"type": "ping"}]

    async def test_exclude_sender(
        self,
        registry: ConnectionRegistry,
        router: BroadcastRouter,
        make_socket: Callable[..., MagicMock],
    ) -> None:
        """Test that the excluded connection is skipped."""
        alice = registry.add(make_socket(), "alice")
        bob = registry.add(make_socket(), "bob")
        registry.join_room(alice, 7)
        registry.join_room(bob, 7)

        delivered = await router.broadcast(7, {"type": "ping"}, exclude=alice)

        assert delivered == 1
        alice.socket.send_text.assert_not_awaited()
        bob.socket.send_text.assert_awaited_once()

    async def test_other_rooms_not_reached(
        self,
        registry: ConnectionRegistry,
        router: BroadcastRouter,
        make_socket: Callable[..., MagicMock],
    ) -> None:
        """Test that only members of the target room receive the message."""
        alice = registry.add(make_socket(), "alice")
        bob = registry.add(make_socket(), "bob")
        registry.join_room(alice, 7)
        registry.join_room(bob, 8)

        await router.broadcast(7, {"type": "ping"})

        bob.socket.send_text.assert_not_awaited()

    async def test_empty_room(self, router: BroadcastRouter) -> None:
        """Test broadcasting to a room with no members."""
        assert await router.broadcast(99, {"type": "ping"}) == 0

    async def test_failing_recipient_is_isolated(
        self,
        registry: ConnectionRegistry,
        router: BroadcastRouter,
        make_socket: Callable[..., MagicMock],
    ) -> None:
        """Test that a failed write does not prevent delivery to others."""
        broken = registry.add(make_socket(), "alice")
        broken.socket.send_text = AsyncMock(side_effect=RuntimeError("connection reset"))
        healthy = registry.add(make_socket(), "bob")
        registry.join_room(broken, 7)
        registry.join_room(healthy, 7)

        delivered = await router.broadcast(7, {"type": "ping"})

        assert delivered == 1
        healthy.socket.send_text.assert_awaited_once()

    async def test_closed_connection_skipped(
        self,
        registry: ConnectionRegistry,
        router: BroadcastRouter,
        make_socket: Callable[..., MagicMock],
    ) -> None:
        """Test that connections marked closed are not written to."""
        alice = registry.add(make_socket(), "alice")
        bob = registry.add(make_socket(), "bob")
        registry.join_room(alice, 7)
        registry.join_room(bob, 7)
        bob.is_open = False

        delivered = await router.broadcast(7, {"type": "ping"})

        assert delivered == 1
        bob.socket.send_text.assert_not_awaited()


class TestSend:
    """Tests for BroadcastRouter.send."""

    async def test_send(
        self,
        registry: ConnectionRegistry,
        router: BroadcastRouter,
        make_socket: Callable[..., MagicMock],
        sent: Callable[[MagicMock], list[dict[str, Any]]],
    ) -> None:
        """Test sending to one connection."""
        connection = registry.add(make_socket(), "alice")

        assert await router.send(connection, {"type": "error", "code": "x"}) is True
        assert sent(connection.socket) == [{"type": "error", "code": "x"}]

    async def test_send_to_removed_connection(
        self,
        registry: ConnectionRegistry,
        router: BroadcastRouter,
        make_socket: Callable[..., MagicMock],
    ) -> None:
        """Test that removed connections are not written to."""
        connection = registry.add(make_socket(), "alice")
        registry.remove(connection)

        assert await router.send(connection, {"type": "ping"}) is False
        connection.socket.send_text.assert_not_awaited()

    async def test_send_failure(
        self,
        registry: ConnectionRegistry,
        router: BroadcastRouter,
        make_socket: Callable[..., MagicMock],
    ) -> None:
        """Test that a failed write is reported, not raised."""
        connection = registry.add(make_socket(), "alice")
        connection.socket.send_text = AsyncMock(side_effect=RuntimeError("gone"))

        assert await router.send(connection, {"type": "ping"}) is False
