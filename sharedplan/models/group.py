from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Group:
    """A cohort of users sharing one renewal date.

    ``members`` keeps approval order.  ``version`` grows by one on every
    member append and is the precondition token for concurrent appends.
    """

    id: UUID
    name: str
    renewal_date: date
    members: tuple[UUID, ...] = ()
    version: int = 0

    @staticmethod
    def new(*, name: str, renewal_date: date) -> Group:
        return Group(id=uuid4(), name=name, renewal_date=renewal_date)

    @property
    def member_count(self) -> int:
        return len(self.members)

    def has_room(self, capacity: int) -> bool:
        return len(self.members) < capacity

    def has_member(self, user_id: UUID) -> bool:
        return user_id in self.members

    def to_dict(self) -> dict[str, object]:
        return {
            "id": str(self.id),
            "name": self.name,
            "renewal_date": self.renewal_date.isoformat(),
            "members": [str(m) for m in self.members],
            "version": self.version,
        }

    @staticmethod
    def from_dict(data: dict) -> Group:
        return Group(
            id=UUID(data["id"]),
            name=data["name"],
            renewal_date=date.fromisoformat(data["renewal_date"]),
            members=tuple(UUID(m) for m in data.get("members", ())),
            version=int(data.get("version", 0)),
        )


@dataclass(frozen=True, slots=True)
class GroupChange:
    """One event on the group feed. ``group`` is None when the document was deleted."""

    group_id: UUID
    group: Group | None

    @property
    def deleted(self) -> bool:
        return self.group is None
