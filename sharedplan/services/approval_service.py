"""Approval workflow: mark a pending user approved and add them to a group.

The directory has no cross-document transactions, so an approval is two
separate writes:

  1. users/{id}   status=approved, group_id=<group>
  2. groups/{id}  members += [user id]   (atomic append-if-below-capacity)

If write 2 fails, write 1 is compensated by putting the user back to
pending.  If the compensation fails too, the user is left approved with a
group_id the group does not list; ``reconcile()`` finds and repairs those.

Write 2 carries the group version read before write 1.  A concurrent
approval into the same group bumps the version, so the append is retried
against a fresh read (capacity is re-checked each time).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import NoReturn
from uuid import UUID

from sharedplan.core.config import SETTINGS
from sharedplan.core.metrics import APPROVALS
from sharedplan.models.group import Group
from sharedplan.models.user import User
from sharedplan.repos.errors import (
    ConcurrentModificationError,
    GroupFullError,
    GroupNotFoundError,
    StoreError,
    UserNotFoundError,
)
from sharedplan.repos.group_repo import GroupRepo
from sharedplan.repos.user_repo import UserRepo
from sharedplan.services.directory import directory

logger = logging.getLogger(__name__)

APPEND_ATTEMPTS = 3


class ApprovalError(Exception):
    code = "approval_failed"


class GroupNotSelectedError(ApprovalError):
    code = "select_group"


class UserAlreadyApprovedError(ApprovalError):
    code = "user_not_pending"


class ApprovalFailedError(ApprovalError):
    """A directory write failed.

    ``partial`` is True when the user document was left approved without
    the matching group membership.
    """

    code = "approval_failed"

    def __init__(
        self,
        user_id: UUID,
        group_id: UUID,
        *,
        partial: bool,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(f"approval of user {user_id} into group {group_id} failed")
        self.user_id = user_id
        self.group_id = group_id
        self.partial = partial
        self.cause = cause


@dataclass(frozen=True, slots=True)
class ApprovalResult:
    user: User
    group: Group


@dataclass(slots=True)
class ReconcileReport:
    repaired: list[UUID] = field(default_factory=list)
    reverted: list[UUID] = field(default_factory=list)
    dangling: list[UUID] = field(default_factory=list)


class ApprovalWorkflow:
    def __init__(self, users: UserRepo, groups: GroupRepo, *, capacity: int) -> None:
        self._users = users
        self._groups = groups
        self.capacity = capacity

    async def approve(self, user_id: UUID, group_id: UUID | None) -> ApprovalResult:
        if group_id is None:
            APPROVALS.labels(outcome="rejected").inc()
            logger.warning("Approval without a group  user_id=%s", user_id)
            raise GroupNotSelectedError(str(user_id))

        # Preconditions; nothing has been written yet.
        user = await self._users.get_by_id(user_id)
        if user is None:
            APPROVALS.labels(outcome="rejected").inc()
            raise UserNotFoundError(user_id)
        if not user.is_pending:
            APPROVALS.labels(outcome="rejected").inc()
            raise UserAlreadyApprovedError(str(user_id))
        group = await self._groups.get(group_id)
        if group is None:
            APPROVALS.labels(outcome="rejected").inc()
            raise GroupNotFoundError(group_id)
        if not group.has_room(self.capacity):
            APPROVALS.labels(outcome="rejected").inc()
            raise GroupFullError(group_id, self.capacity)

        # Write 1
        try:
            user = await self._users.mark_approved(user_id, group_id)
        except StoreError as e:
            APPROVALS.labels(outcome="failed").inc()
            logger.exception(
                "Approval failed on user write",
                extra={"user_id": str(user_id), "group_id": str(group_id)},
            )
            raise ApprovalFailedError(
                user_id, group_id, partial=False, cause=e
            ) from e

        # Write 2
        try:
            group = await self._append(group, user_id)
        except StoreError as e:
            await self._compensate(user_id, group_id, e)

        APPROVALS.labels(outcome="ok").inc()
        logger.info(
            "User approved  user_id=%s group_id=%s members=%d/%d",
            user_id,
            group_id,
            group.member_count,
            self.capacity,
        )
        return ApprovalResult(user=user, group=group)

    async def reconcile(self) -> ReconcileReport:
        """Repair approved users missing from their group's member list.

        Missing member with room left → appended.  Missing member of a full
        group → reverted to pending.  Group no longer exists → reported as
        dangling and left alone.
        """
        report = ReconcileReport()
        for user in await self._users.list_approved():
            if user.group_id is None:
                continue
            group = await self._groups.get(user.group_id)
            if group is None:
                report.dangling.append(user.id)
                continue
            if group.has_member(user.id):
                continue
            try:
                await self._groups.append_member(
                    group.id, user.id, capacity=self.capacity
                )
                report.repaired.append(user.id)
            except GroupFullError:
                await self._users.revert_to_pending(user.id)
                report.reverted.append(user.id)

        logger.info(
            "Reconcile finished  repaired=%d reverted=%d dangling=%d",
            len(report.repaired),
            len(report.reverted),
            len(report.dangling),
        )
        return report

    async def _append(self, group: Group, user_id: UUID) -> Group:
        expected = group.version
        for attempt in range(1, APPEND_ATTEMPTS + 1):
            try:
                return await self._groups.append_member(
                    group.id,
                    user_id,
                    capacity=self.capacity,
                    expected_version=expected,
                )
            except ConcurrentModificationError as e:
                if attempt == APPEND_ATTEMPTS:
                    raise
                logger.info(
                    "Group changed during approval, retrying  group_id=%s attempt=%d",
                    group.id,
                    attempt,
                )
                current = await self._groups.get(group.id)
                if current is None:
                    raise GroupNotFoundError(group.id) from e
                expected = current.version
        raise AssertionError("unreachable")

    async def _compensate(
        self, user_id: UUID, group_id: UUID, cause: StoreError
    ) -> NoReturn:
        try:
            await self._users.revert_to_pending(user_id)
        except StoreError:
            APPROVALS.labels(outcome="partial").inc()
            logger.exception(
                "Approval left partially applied; user approved without membership",
                extra={"user_id": str(user_id), "group_id": str(group_id)},
            )
            raise ApprovalFailedError(
                user_id, group_id, partial=True, cause=cause
            ) from cause

        APPROVALS.labels(outcome="compensated").inc()
        logger.warning(
            "Approval rolled back after group write failed: %s",
            cause,
            extra={"user_id": str(user_id), "group_id": str(group_id)},
        )
        raise ApprovalFailedError(user_id, group_id, partial=False, cause=cause) from cause


approval_workflow = ApprovalWorkflow(
    directory.users, directory.groups, capacity=SETTINGS.group_capacity
)
