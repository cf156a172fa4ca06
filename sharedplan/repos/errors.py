from __future__ import annotations

from uuid import UUID


class StoreError(Exception):
    """A directory read or write failed."""


class DocumentNotFoundError(StoreError, LookupError):
    pass


class UserNotFoundError(DocumentNotFoundError):
    def __init__(self, user_id: UUID) -> None:
        super().__init__(f"user {user_id} not found")
        self.user_id = user_id


class GroupNotFoundError(DocumentNotFoundError):
    def __init__(self, group_id: UUID) -> None:
        super().__init__(f"group {group_id} not found")
        self.group_id = group_id


class DuplicateEmailError(StoreError, ValueError):
    pass


class GroupFullError(StoreError):
    def __init__(self, group_id: UUID, capacity: int) -> None:
        super().__init__(f"group {group_id} is at capacity ({capacity})")
        self.group_id = group_id
        self.capacity = capacity


class ConcurrentModificationError(StoreError):
    """The group changed since it was read (version precondition failed)."""

    def __init__(self, group_id: UUID, expected: int, actual: int) -> None:
        super().__init__(
            f"group {group_id} version is {actual}, expected {expected}"
        )
        self.group_id = group_id
        self.expected = expected
        self.actual = actual
