from dataclasses import dataclass
from datetime import datetime, timedelta

import jwt

from civicpulse.config import settings
from civicpulse.database import utcnow

RESET_TOKEN_TYPE = "password_reset"


class TokenError(ValueError):
    pass


@dataclass(frozen=True)
class ResetTokenData:
    identifier: str
    version: int


def reset_tokens_enabled() -> bool:
    return bool(settings.jwt_secret)


def create_reset_token(
    identifier: str, version: int, now: datetime | None = None
) -> str:
    """Sign a reset token bound to the account's current password version."""
    if not settings.jwt_secret:
        raise TokenError("JWT secret is not configured")
    now = now or utcnow()
    expires_at = now + timedelta(minutes=settings.reset_token_expire_minutes)
    payload = {
        "sub": identifier,
        "type": RESET_TOKEN_TYPE,
        "ver": version,
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_reset_token(token: str) -> ResetTokenData:
    payload = _decode_token(token, expected_type=RESET_TOKEN_TYPE)
    identifier = payload.get("sub")
    if not identifier:
        raise TokenError("Token subject is missing")
    version = payload.get("ver")
    # bool is an int subclass.
    if not isinstance(version, int) or isinstance(version, bool):
        raise TokenError("Token version is missing")
    return ResetTokenData(identifier=identifier, version=version)


def _decode_token(token: str, expected_type: str) -> dict:
    if not token:
        raise TokenError("Token is missing")
    if not settings.jwt_secret:
        raise TokenError("JWT secret is not configured")
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenError("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise TokenError("Invalid token") from exc
    if payload.get("type") != expected_type:
        raise TokenError("Invalid token type")
    return payload
