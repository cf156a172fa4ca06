from __future__ import annotations

import asyncio

import pytest
from argon2 import PasswordHasher

from sharedplan.models.user import User
from sharedplan.repos.user_repo import InMemoryUserRepo
from sharedplan.services import auth_service


def test_hash_and_verify() -> None:
    hashed = auth_service.hash_password("abcdef")
    assert hashed.startswith("$argon2")
    assert auth_service.verify_password("abcdef", hashed)
    assert not auth_service.verify_password("abcdeg", hashed)


def test_verify_handles_missing_and_garbage_hashes() -> None:
    assert not auth_service.verify_password("abcdef", None)
    assert not auth_service.verify_password("abcdef", "not-a-hash")
    assert not auth_service.verify_password("", auth_service.hash_password("x"))


def test_hash_rejects_empty_password() -> None:
    with pytest.raises(ValueError):
        auth_service.hash_password("")


def test_authenticate_rehashes_outdated_hash() -> None:
    repo = InMemoryUserRepo()
    weak = PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)
    user = User.new(email="old@example.com", password_hash=weak.hash("abcdef"))
    asyncio.run(repo.add(user))

    found = asyncio.run(auth_service.authenticate_user(repo, "old@example.com", "abcdef"))

    assert found is not None
    stored = asyncio.run(repo.get_by_id(user.id))
    assert stored.password_hash != user.password_hash
    assert auth_service.verify_password("abcdef", stored.password_hash)
