"""Response bodies shared by the admin and member routers."""

from __future__ import annotations

from pydantic import BaseModel

from sharedplan.models.group import Group
from sharedplan.models.user import User


class GroupOut(BaseModel):
    id: str
    name: str
    renewalDate: str
    members: list[str]
    memberCount: int
    capacity: int
    full: bool

    @staticmethod
    def of(group: Group, capacity: int) -> GroupOut:
        return GroupOut(
            id=str(group.id),
            name=group.name,
            renewalDate=group.renewal_date.isoformat(),
            members=[str(m) for m in group.members],
            memberCount=group.member_count,
            capacity=capacity,
            full=not group.has_room(capacity),
        )


class PendingUserOut(BaseModel):
    id: str
    email: str
    name: str
    status: str
    createdAt: str

    @staticmethod
    def of(user: User) -> PendingUserOut:
        return PendingUserOut(
            id=str(user.id),
            email=user.email,
            name=user.name,
            status=user.status,
            createdAt=user.created_at.isoformat(),
        )
