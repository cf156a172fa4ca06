"""JWT creation and validation (ES256).

Two token kinds share one key pair and are kept apart by audience:

  access:  bearer token for the JSON API, carries roles
  session: HttpOnly cookie for the server-rendered pages

Roles are read from the user record at sign-in and copied into the
token; the admin routes check them server-side on every request.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives.asymmetric import ec

# Dev/test: ephemeral key pair generated on import.
_private_key = ec.generate_private_key(ec.SECP256R1())
_public_key = _private_key.public_key()

ALGORITHM = "ES256"
ISSUER = "sharedplan"
AUDIENCE = "sharedplan-api"
ACCESS_TOKEN_TTL_MIN = 60

SESSION_AUDIENCE = "sharedplan-session"
SESSION_TTL_MIN = 60 * 12

_REQUIRED_CLAIMS = ["sub", "exp", "iat", "jti"]


def _claims(sub: str, audience: str, ttl: timedelta) -> dict:
    now = datetime.now(UTC)
    return {
        "sub": sub,
        "iss": ISSUER,
        "aud": audience,
        "exp": now + ttl,
        "iat": now,
        "jti": str(uuid.uuid4()),
    }


def create_access_token(*, sub: str, roles: list[str] | None = None) -> str:
    payload = _claims(sub, AUDIENCE, timedelta(minutes=ACCESS_TOKEN_TTL_MIN))
    payload["roles"] = roles or ["user"]
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Raises jwt.ExpiredSignatureError, jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": _REQUIRED_CLAIMS},
    )


def create_session_token(*, sub: str, roles: list[str] | None = None) -> str:
    payload = _claims(sub, SESSION_AUDIENCE, timedelta(minutes=SESSION_TTL_MIN))
    payload["roles"] = roles or ["user"]
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_session_token(token: str) -> dict:
    """Verify a session cookie JWT. Pins audience to SESSION_AUDIENCE."""
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=SESSION_AUDIENCE,
        options={"require": _REQUIRED_CLAIMS},
    )
