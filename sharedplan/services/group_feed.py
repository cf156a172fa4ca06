"""Live change feed for group documents.

Each write to a group (create, member append, delete) is published as a
GroupChange; member dashboards subscribe to the one group they belong to
and replace their local copy on every event.  A deletion is published
with ``group=None``.

Same Protocol + InMemory + Redis pattern as the rate limiter and the
token blacklist:

  InMemoryGroupFeed: one asyncio.Queue per subscriber, single process.
  RedisGroupFeed:    Redis pub/sub on ``groups:<id>`` channels, so an
                      approval handled by one API instance reaches a
                      dashboard stream served by another.

Delivery is at-most-once and only to subscribers open at publish time.
Consumers load the current document right after subscribing, so nothing
is lost between the initial read and the first event.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Protocol, runtime_checkable
from uuid import UUID

from redis.exceptions import RedisError

from sharedplan.core.metrics import GROUP_FEED_SUBSCRIBERS
from sharedplan.db.redis import redis_pool
from sharedplan.models.group import Group, GroupChange

logger = logging.getLogger(__name__)


@runtime_checkable
class GroupSubscription(Protocol):
    group_id: UUID

    @property
    def closed(self) -> bool: ...

    async def next(self) -> GroupChange:
        """Wait for the next change to the subscribed group."""
        ...

    async def close(self) -> None: ...


@runtime_checkable
class GroupFeed(Protocol):
    async def publish(self, change: GroupChange) -> None: ...
    async def subscribe(self, group_id: UUID) -> GroupSubscription: ...


def encode_change(change: GroupChange) -> str:
    return json.dumps(
        {
            "group_id": str(change.group_id),
            "group": change.group.to_dict() if change.group is not None else None,
        }
    )


def decode_change(raw: str) -> GroupChange:
    data = json.loads(raw)
    group = Group.from_dict(data["group"]) if data.get("group") else None
    return GroupChange(group_id=UUID(data["group_id"]), group=group)


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------


class _QueueSubscription:
    def __init__(self, feed: InMemoryGroupFeed, group_id: UUID) -> None:
        self.group_id = group_id
        self._feed = feed
        self._queue: asyncio.Queue[GroupChange] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _deliver(self, change: GroupChange) -> None:
        self._queue.put_nowait(change)

    async def next(self) -> GroupChange:
        if self._closed:
            raise RuntimeError("subscription is closed")
        return await self._queue.get()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._feed._detach(self)


class InMemoryGroupFeed:
    def __init__(self) -> None:
        self._subscribers: dict[UUID, list[_QueueSubscription]] = {}

    async def publish(self, change: GroupChange) -> None:
        for sub in list(self._subscribers.get(change.group_id, ())):
            sub._deliver(change)

    async def subscribe(self, group_id: UUID) -> GroupSubscription:
        sub = _QueueSubscription(self, group_id)
        self._subscribers.setdefault(group_id, []).append(sub)
        GROUP_FEED_SUBSCRIBERS.inc()
        logger.debug("Group feed subscribed group=%s", group_id)
        return sub

    def subscriber_count(self, group_id: UUID) -> int:
        return len(self._subscribers.get(group_id, ()))

    def _detach(self, sub: _QueueSubscription) -> None:
        subs = self._subscribers.get(sub.group_id)
        if subs and sub in subs:
            subs.remove(sub)
            if not subs:
                del self._subscribers[sub.group_id]
            GROUP_FEED_SUBSCRIBERS.dec()
            logger.debug("Group feed unsubscribed group=%s", sub.group_id)


# ---------------------------------------------------------------------------
# Redis pub/sub
# ---------------------------------------------------------------------------


class _RedisSubscription:
    def __init__(self, pubsub, channel: str, group_id: UUID) -> None:
        self.group_id = group_id
        self._pubsub = pubsub
        self._channel = channel
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def next(self) -> GroupChange:
        if self._closed:
            raise RuntimeError("subscription is closed")
        while True:
            message = await self._pubsub.get_message(
                ignore_subscribe_messages=True, timeout=1.0
            )
            if message is None:
                continue
            try:
                return decode_change(message["data"])
            except (KeyError, ValueError):
                logger.warning("Dropping malformed group feed message on %s", self._channel)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._pubsub.unsubscribe(self._channel)
        await self._pubsub.aclose()
        GROUP_FEED_SUBSCRIBERS.dec()


class RedisGroupFeed:
    _PREFIX = "groups:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def publish(self, change: GroupChange) -> None:
        await self._redis.publish(
            f"{self._PREFIX}{change.group_id}", encode_change(change)
        )

    async def subscribe(self, group_id: UUID) -> GroupSubscription:
        channel = f"{self._PREFIX}{group_id}"
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(channel)
        GROUP_FEED_SUBSCRIBERS.inc()
        return _RedisSubscription(pubsub, channel, group_id)


async def publish_committed(feed: GroupFeed | None, change: GroupChange) -> None:
    """Publish a change whose write is already committed.

    Delivery is at-most-once: a feed outage is logged and dropped so the
    caller still gets the committed result.
    """
    if feed is None:
        return
    try:
        await feed.publish(change)
    except (RedisError, OSError):
        logger.exception("Group feed publish failed  group_id=%s", change.group_id)


def build_group_feed() -> GroupFeed:
    if redis_pool is not None:
        return RedisGroupFeed(redis_pool)
    return InMemoryGroupFeed()
