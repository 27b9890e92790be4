"""JWT access-token verification (and issuance for tests/tooling).

Session issuance (login, refresh) belongs to the external auth provider; this
service only needs to turn a bearer token into a user id. ``create_access_token``
exists so tests and local tooling can mint tokens signed with the shared secret.

MVP NOTE: Using HS256 (symmetric HMAC) with a shared JWT_SECRET. If the auth
provider moves to RS256, only ``decode_token`` needs the public key.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.tp_common.errors import InvalidTokenError

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)


def create_access_token(user_id: str, expires_delta: timedelta | None = None) -> str:
    """Issue a short-lived access token (default: JWT_EXPIRE_MINUTES)."""
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "type": "access",
        "iat": now,
        "exp": now + (expires_delta if expires_delta is not None else _ACCESS_EXPIRE),
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def decode_token(token: str) -> dict[str, str]:
    """Decode and validate an access token.

    Returns:
        Decoded payload dict with at minimum {"sub": ..., "type": "access"}.

    Raises:
        InvalidTokenError: signature invalid, token expired, or not an access token.
    """
    try:
        payload: dict[str, str] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise InvalidTokenError() from None

    if payload.get("type") != "access" or not payload.get("sub"):
        raise InvalidTokenError()

    return payload
