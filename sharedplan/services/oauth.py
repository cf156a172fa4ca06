"""Verification of third-party identity tokens (Google Sign-In).

The browser completes the Google popup flow and posts the resulting ID
token; the service checks it against Google's published signing keys
before trusting the email inside.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import jwt

logger = logging.getLogger(__name__)

GOOGLE_JWKS_URL = "https://www.googleapis.com/oauth2/v3/certs"
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


class IdentityTokenError(Exception):
    """The presented identity token could not be verified."""


@dataclass(frozen=True, slots=True)
class ExternalIdentity:
    subject: str
    email: str
    name: str = ""


class IdentityTokenVerifier(Protocol):
    def verify(self, id_token: str) -> ExternalIdentity: ...


class GoogleIdTokenVerifier:
    """Checks signature (RS256 via JWKS), issuer, audience, expiry and
    that Google has verified the email address."""

    def __init__(
        self,
        client_id: str | None,
        jwks_client: jwt.PyJWKClient | None = None,
    ) -> None:
        self._client_id = client_id
        self._jwks_client = jwks_client

    def _jwks(self) -> jwt.PyJWKClient:
        if self._jwks_client is None:
            self._jwks_client = jwt.PyJWKClient(GOOGLE_JWKS_URL, cache_keys=True)
        return self._jwks_client

    def verify(self, id_token: str) -> ExternalIdentity:
        if not self._client_id:
            raise IdentityTokenError("GOOGLE_CLIENT_ID is not configured")
        try:
            signing_key = self._jwks().get_signing_key_from_jwt(id_token)
            claims = jwt.decode(
                id_token,
                signing_key.key,
                algorithms=["RS256"],
                audience=self._client_id,
                options={"require": ["iss", "sub", "aud", "exp", "email"]},
            )
        except jwt.PyJWTError as e:
            logger.warning("Google ID token rejected: %s", e)
            raise IdentityTokenError("invalid identity token") from None

        if claims["iss"] not in GOOGLE_ISSUERS:
            raise IdentityTokenError(f"unexpected issuer {claims['iss']!r}")
        if not claims.get("email_verified", False):
            raise IdentityTokenError("email not verified by identity provider")

        return ExternalIdentity(
            subject=str(claims["sub"]),
            email=str(claims["email"]),
            name=str(claims.get("name", "")),
        )
