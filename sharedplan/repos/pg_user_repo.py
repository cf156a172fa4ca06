"""PostgreSQL implementation of UserRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sharedplan.db.tables import UserRow
from sharedplan.models.user import APPROVED, PENDING, User
from sharedplan.repos.errors import DuplicateEmailError, StoreError, UserNotFoundError


class PgUserRepo:
    """Satisfies the UserRepo Protocol using PostgreSQL via SQLAlchemy.

    Each call runs in its own short transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_id(self, user_id: UUID) -> User | None:
        return await self._one(select(UserRow).where(UserRow.id == user_id))

    async def get_by_email(self, email: str) -> User | None:
        return await self._one(select(UserRow).where(UserRow.email == email))

    async def add(self, user: User) -> None:
        row = UserRow(
            id=user.id,
            email=user.email,
            password_hash=user.password_hash,
            name=user.name,
            roles=list(user.roles),
            status=user.status,
            created_at=user.created_at,
            group_id=user.group_id,
        )
        try:
            async with self._session_factory() as session, session.begin():
                session.add(row)
        except IntegrityError:
            raise DuplicateEmailError("email already exists") from None
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

    async def list_pending(self) -> list[User]:
        return await self._many(
            select(UserRow)
            .where(UserRow.status == PENDING)
            .order_by(UserRow.created_at)
        )

    async def list_approved(self) -> list[User]:
        return await self._many(select(UserRow).where(UserRow.status == APPROVED))

    async def mark_approved(self, user_id: UUID, group_id: UUID) -> User:
        return await self._update(user_id, status=APPROVED, group_id=group_id)

    async def revert_to_pending(self, user_id: UUID) -> User:
        return await self._update(user_id, status=PENDING, group_id=None)

    async def update_password_hash(self, user_id: UUID, password_hash: str) -> None:
        await self._update(user_id, password_hash=password_hash)

    async def _update(self, user_id: UUID, **values: object) -> User:
        stmt = (
            update(UserRow)
            .where(UserRow.id == user_id)
            .values(**values)
            .returning(UserRow)
        )
        try:
            async with self._session_factory() as session, session.begin():
                row = (await session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        if row is None:
            raise UserNotFoundError(user_id)
        return _row_to_user(row)

    async def _one(self, stmt) -> User | None:
        try:
            async with self._session_factory() as session:
                row = (await session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        return _row_to_user(row) if row is not None else None

    async def _many(self, stmt) -> list[User]:
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        return [_row_to_user(r) for r in rows]


def _row_to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        email=row.email,
        status=APPROVED if row.status == APPROVED else PENDING,
        created_at=row.created_at,
        group_id=row.group_id,
        password_hash=row.password_hash,
        name=row.name or "",
        roles=tuple(row.roles) if row.roles else (),
    )
