"""PostgreSQL implementation of GroupRepo.

``append_member`` is one conditional ``UPDATE ... RETURNING``: the
capacity check, the duplicate check and the optional version check all
live in the WHERE clause, so two API instances approving into the same
near-full group cannot push it past capacity.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, func, not_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sharedplan.db.tables import GroupRow
from sharedplan.models.group import Group, GroupChange
from sharedplan.repos.errors import (
    ConcurrentModificationError,
    GroupFullError,
    GroupNotFoundError,
    StoreError,
)
from sharedplan.services.group_feed import GroupFeed, publish_committed


class PgGroupRepo:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        feed: GroupFeed | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._feed = feed

    async def get(self, group_id: UUID) -> Group | None:
        try:
            async with self._session_factory() as session:
                row = await session.get(GroupRow, group_id)
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        return _row_to_group(row) if row is not None else None

    async def list_all(self) -> list[Group]:
        try:
            async with self._session_factory() as session:
                rows = (
                    (await session.execute(select(GroupRow).order_by(GroupRow.name)))
                    .scalars()
                    .all()
                )
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        return [_row_to_group(r) for r in rows]

    async def add(self, group: Group) -> None:
        row = GroupRow(
            id=group.id,
            name=group.name,
            renewal_date=group.renewal_date,
            members=list(group.members),
            version=group.version,
        )
        try:
            async with self._session_factory() as session, session.begin():
                session.add(row)
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        await self._publish(GroupChange(group_id=group.id, group=group))

    async def delete(self, group_id: UUID) -> bool:
        stmt = delete(GroupRow).where(GroupRow.id == group_id)
        try:
            async with self._session_factory() as session, session.begin():
                result = await session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        removed = bool(result.rowcount)
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
        conditions = [
            GroupRow.id == group_id,
            func.coalesce(func.cardinality(GroupRow.members), 0) < capacity,
            not_(GroupRow.members.any(user_id)),
        ]
        if expected_version is not None:
            conditions.append(GroupRow.version == expected_version)

        stmt = (
            update(GroupRow)
            .where(*conditions)
            .values(
                members=func.array_append(GroupRow.members, user_id),
                version=GroupRow.version + 1,
            )
            .returning(GroupRow)
        )
        try:
            async with self._session_factory() as session, session.begin():
                row = (await session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

        if row is None:
            # Nothing matched; re-read to report which precondition failed.
            current = await self.get(group_id)
            if current is None:
                raise GroupNotFoundError(group_id)
            if current.has_member(user_id):
                return current
            if expected_version is not None and current.version != expected_version:
                raise ConcurrentModificationError(
                    group_id, expected_version, current.version
                )
            raise GroupFullError(group_id, capacity)

        updated = _row_to_group(row)
        await self._publish(GroupChange(group_id=group_id, group=updated))
        return updated

    async def _publish(self, change: GroupChange) -> None:
        await publish_committed(self._feed, change)


def _row_to_group(row: GroupRow) -> Group:
    return Group(
        id=row.id,
        name=row.name,
        renewal_date=row.renewal_date,
        members=tuple(row.members or ()),
        version=row.version,
    )
