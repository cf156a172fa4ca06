from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from sharedplan.models.group import Group, GroupChange
from sharedplan.repos.errors import (
    ConcurrentModificationError,
    GroupFullError,
    GroupNotFoundError,
)
from sharedplan.services.group_feed import GroupFeed, publish_committed


class GroupRepo(Protocol):
    async def get(self, group_id: UUID) -> Group | None: ...
    async def list_all(self) -> list[Group]: ...
    async def add(self, group: Group) -> None: ...
    async def delete(self, group_id: UUID) -> bool: ...
    async def append_member(
        self,
        group_id: UUID,
        user_id: UUID,
        *,
        capacity: int,
        expected_version: int | None = None,
    ) -> Group:
        """Append ``user_id`` if the group is below ``capacity``.

        Atomic with respect to other appends.  Appending an existing
        member returns the group unchanged.

        Raises GroupNotFoundError, GroupFullError, or
        ConcurrentModificationError when ``expected_version`` is given
        and no longer matches.
        """
        ...


class InMemoryGroupRepo:
    def __init__(self, feed: GroupFeed | None = None) -> None:
        self._by_id: dict[UUID, Group] = {}
        self._feed = feed

    async def get(self, group_id: UUID) -> Group | None:
        return self._by_id.get(group_id)

    async def list_all(self) -> list[Group]:
        return list(self._by_id.values())

    async def add(self, group: Group) -> None:
        if group.id in self._by_id:
            raise ValueError("group already exists")
        self._by_id[group.id] = group
        await self._publish(GroupChange(group_id=group.id, group=group))

    async def delete(self, group_id: UUID) -> bool:
        removed = self._by_id.pop(group_id, None) is not None
        if removed:
            await self._publish(GroupChange(group_id=group_id, group=None))
        return removed

    async def append_member(
        self,
        group_id: UUID,
        user_id: UUID,
        *,
        capacity: int,
        expected_version: int | None = None,
    ) -> Group:
        # No await between the read and the write, so this is atomic
        # with respect to other coroutines on the loop.
        group = self._by_id.get(group_id)
        if group is None:
            raise GroupNotFoundError(group_id)
        if group.has_member(user_id):
            return group
        if expected_version is not None and group.version != expected_version:
            raise ConcurrentModificationError(
                group_id, expected_version, group.version
            )
        if not group.has_room(capacity):
            raise GroupFullError(group_id, capacity)

        updated = replace(
            group, members=group.members + (user_id,), version=group.version + 1
        )
        self._by_id[group_id] = updated
        await self._publish(GroupChange(group_id=group_id, group=updated))
        return updated

    async def _publish(self, change: GroupChange) -> None:
        await publish_committed(self._feed, change)
