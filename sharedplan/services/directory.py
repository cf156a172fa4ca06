"""The directory: the ``users`` and ``groups`` collections plus the group feed.

Backends are chosen once at import, the same conditional-singleton
pattern used for Redis and the database engine:

  DATABASE_URL set → PgUserRepo / PgGroupRepo, else in-memory repos
  REDIS_URL set    → RedisGroupFeed,           else InMemoryGroupFeed
"""

from __future__ import annotations

from dataclasses import dataclass

from sharedplan.db.engine import async_session_factory
from sharedplan.repos.group_repo import GroupRepo, InMemoryGroupRepo
from sharedplan.repos.pg_group_repo import PgGroupRepo
from sharedplan.repos.pg_user_repo import PgUserRepo
from sharedplan.repos.user_repo import InMemoryUserRepo, UserRepo
from sharedplan.services.group_feed import GroupFeed, build_group_feed


@dataclass(frozen=True, slots=True)
class Directory:
    users: UserRepo
    groups: GroupRepo
    feed: GroupFeed


def build_directory() -> Directory:
    feed = build_group_feed()
    if async_session_factory is not None:
        return Directory(
            users=PgUserRepo(async_session_factory),
            groups=PgGroupRepo(async_session_factory, feed),
            feed=feed,
        )
    return Directory(
        users=InMemoryUserRepo(),
        groups=InMemoryGroupRepo(feed),
        feed=feed,
    )


directory = build_directory()
