"""Bearer credential verification for WebSocket and HTTP clients."""

from __future__ import annotations

from typing import Any

import structlog
from jose import ExpiredSignatureError, JWTError, jwt

from shapesync.core.exceptions import AuthenticationError

logger = structlog.get_logger(__name__)

# Older tokens carry the user id as "id", newer ones as "userId".
USER_ID_CLAIMS = ("userId", "id")


class CredentialVerifier:
    """Verify signed JWT credentials and extract the user id.

    The verifier never raises: every failure (missing, malformed, bad
    signature, expired, no usable user id) yields None and is logged with
    its reason.
    """

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        """Initialize the verifier.

        Args:
            secret: Shared secret used to check signatures.
            algorithm: Expected signing algorithm.
        """
        self._secret = secret
        self._algorithm = algorithm

    def verify(self, token: str | None) -> str | None:
        """Verify a credential.

        Args:
            token: The encoded JWT, or None when the client sent none.

        Returns:
            The authenticated user id, or None if the credential is rejected.
        """
        try:
            return self._authenticate(token)
        except AuthenticationError as e:
            logger.debug("Credential rejected", reason=e.reason)
            return None

    def _authenticate(self, token: str | None) -> str:
        if not token:
            raise AuthenticationError("missing")

        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError as e:
            raise AuthenticationError("expired") from e
        except (JWTError, TypeError, ValueError) as e:
            # Non-scalar time claims escape jose as TypeError.
            raise AuthenticationError("invalid", str(e)) from e

        user_id = _extract_user_id(claims)
        if user_id is None:
            raise AuthenticationError("no_user_id")
        return user_id


def _extract_user_id(claims: dict[str, Any]) -> str | None:
    for claim in USER_ID_CLAIMS:
        value = claims.get(claim)
        if isinstance(value, bool):
            continue
        if isinstance(value, int) or (isinstance(value, str) and value):
            return str(value)
    return None
