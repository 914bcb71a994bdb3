"""Litestar controllers for shapesync HTTP endpoints."""

from __future__ import annotations

from typing import Annotated, Any, ClassVar

from litestar import Controller, Request, get
from litestar.di import Provide
from litestar.exceptions import NotAuthorizedException
from litestar.params import Dependency, Parameter

from shapesync.auth.verifier import CredentialVerifier
from shapesync.services.shape_log import DEFAULT_HISTORY_LIMIT, ShapeLog


def bearer_token(authorization: str | None) -> str | None:
    """Extract the credential from an Authorization header value.

    Both ``Bearer <token>`` and a bare token are accepted.

    Args:
        authorization: The raw header value.

    Returns:
        The token, or None if the header is absent or empty.
    """
    if not authorization:
        return None
    scheme, _, credentials = authorization.strip().partition(" ")
    if credentials and scheme.lower() == "bearer":
        return credentials.strip() or None
    return authorization.strip() or None


async def provide_user_id(
    request: Request,
    verifier: Annotated[CredentialVerifier, Dependency(skip_validation=True)],
) -> str:
    """Authenticate the request from its Authorization header.

    Args:
        request: The current request.
        verifier: The credential verifier (injected).

    Returns:
        The authenticated user id.

    Raises:
        NotAuthorizedException: If the credential is missing or rejected.
    """
    user_id = verifier.verify(bearer_token(request.headers.get("authorization")))
    if user_id is None:
        raise NotAuthorizedException(
            detail="A valid bearer credential is required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id


class RoomShapeController(Controller):
    """Read side of the room shape logs.

    Clients load a room's recent shapes here when they open a canvas, then
    follow live changes over the WebSocket.
    """

    path = "/rooms"
    tags: ClassVar[list[str]] = ["Rooms"]
    dependencies: ClassVar[dict[str, Provide]] = {"user_id": Provide(provide_user_id)}

    @get("/{room_id:int}/shapes")
    async def list_shapes(
        self,
        room_id: int,
        user_id: Annotated[str, Dependency()],
        shape_log: Annotated[ShapeLog, Dependency(skip_validation=True)],
        limit: Annotated[int, Parameter(ge=1, le=DEFAULT_HISTORY_LIMIT)] = DEFAULT_HISTORY_LIMIT,
    ) -> dict[str, Any]:
        """Get a room's shape log.

        Args:
            room_id: The room to read.
            user_id: The authenticated caller (injected).
            shape_log: The shape log service (injected).
            limit: Maximum number of newest records to return.

        Returns:
            The room id and its records, oldest first.

        Raises:
            NotAuthorizedException: If the caller is not authenticated.
            StorageError: If the store cannot be read.
        """
        records = await shape_log.history(room_id, limit=limit)
        return {
            "roomId": room_id,
            "messages": [record.to_dict() for record in records],
        }
