"""Bearer tokens whose ``sub`` claim is a member's UUID."""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Sequence

import jwt

DEFAULT_TOKEN_TTL = timedelta(minutes=30)
_REQUIRED_CLAIMS = ["sub", "exp"]


class InvalidTokenError(ValueError):
    """The bearer token does not identify a member."""


def create_access_token(
    *,
    user_id: uuid.UUID,
    secret: str,
    algorithm: str = "HS256",
    expires_delta: timedelta | None = None,
) -> str:
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "iat": issued_at,
        "exp": issued_at + (expires_delta or DEFAULT_TOKEN_TTL),
    }
    return jwt.encode(claims, secret, algorithm=algorithm)


def member_id_from_token(token: str, *, secret: str, algorithms: Sequence[str]) -> uuid.UUID:
    try:
        claims = jwt.decode(token, secret, algorithms=list(algorithms), options={"require": _REQUIRED_CLAIMS})
        return uuid.UUID(str(claims["sub"]))
    except (jwt.InvalidTokenError, ValueError) as exc:
        raise InvalidTokenError("token does not carry a member id") from exc
