from __future__ import annotations

import asyncio
import time

import jwt
import pytest

from sharedplan.services import token_service
from sharedplan.services.token_blacklist import InMemoryTokenBlacklist


def test_access_token_round_trip() -> None:
    token = token_service.create_access_token(sub="u-1", roles=["admin"])
    claims = token_service.decode_access_token(token)
    assert claims["sub"] == "u-1"
    assert claims["roles"] == ["admin"]
    assert claims["jti"]


def test_session_token_is_not_an_access_token() -> None:
    session = token_service.create_session_token(sub="u-1")
    with pytest.raises(jwt.InvalidAudienceError):
        token_service.decode_access_token(session)
    assert token_service.decode_session_token(session)["roles"] == ["user"]


def test_blacklist_revokes_until_expiry() -> None:
    blacklist = InMemoryTokenBlacklist()

    async def _run():
        await blacklist.revoke("live", time.time() + 60)
        await blacklist.revoke("stale", time.time() - 1)
        return (
            await blacklist.is_revoked("live"),
            await blacklist.is_revoked("stale"),
            await blacklist.is_revoked("never"),
        )

    assert asyncio.run(_run()) == (True, False, False)
