"""
Bearer token helpers.

Tokens are HS256 JWTs issued by the AlgoEdge auth service. This service
only verifies them; ``create_access_token`` exists for tooling and tests.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from algoedge.core.config import settings
from algoedge.domain.mt5.errors import AuthenticationError

logger = logging.getLogger(__name__)


def create_access_token(
    user_id: int,
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
    secret: Optional[str] = None,
) -> str:
    """Mint a signed access token for a user.

    Args:
        user_id: Stored in the ``userId`` claim and mirrored in ``sub``.
        email: Optional email claim.
        expires_delta: Lifetime of the token. Defaults to
            ``ACCESS_TOKEN_EXPIRE_MINUTES``.
        secret: Signing secret. Defaults to ``JWT_SECRET``.

    Returns:
        The encoded JWT.
    """
    now = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    payload: dict[str, Any] = {
        "userId": user_id,
        "sub": str(user_id),
        "iat": now,
        "exp": now + lifetime,
    }
    if email:
        payload["email"] = email
    return jwt.encode(
        payload, secret or settings.jwt_secret, algorithm=settings.jwt_algorithm
    )


def decode_access_token(token: str, secret: Optional[str] = None) -> int:
    """Verify a bearer token and return the user id it names.

    The id is read from ``userId``, falling back to ``sub``.

    Raises:
        AuthenticationError: If the token is expired, malformed, badly
            signed, or carries no usable user id.
    """
    try:
        payload = jwt.decode(
            token,
            secret or settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        logger.debug("Rejected bearer token: %s", type(exc).__name__)
        raise AuthenticationError("Invalid token") from exc

    raw_id = payload.get("userId", payload.get("sub"))
    try:
        return int(raw_id)
    except (TypeError, ValueError) as exc:
        raise AuthenticationError("Invalid token") from exc
