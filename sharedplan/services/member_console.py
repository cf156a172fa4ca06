"""Member dashboard state: the user's group, kept current from the feed."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from uuid import UUID

from sharedplan.core.notices import PENDING_ASSIGNMENT
from sharedplan.models.group import Group, GroupChange
from sharedplan.models.user import User
from sharedplan.repos.group_repo import GroupRepo
from sharedplan.services.group_feed import GroupFeed, GroupSubscription

logger = logging.getLogger(__name__)

BILLING_PERIOD_DAYS = 30


def period_progress(renewal_date: date, today: date | None = None) -> int:
    """Percent of the current billing period already elapsed (0-100).

    The period is the BILLING_PERIOD_DAYS ending on ``renewal_date``.
    """
    today = today or date.today()
    start = renewal_date - timedelta(days=BILLING_PERIOD_DAYS)
    elapsed = (today - start).days
    return max(0, min(100, round(elapsed * 100 / BILLING_PERIOD_DAYS)))


def group_view(
    user: User, group: Group | None, capacity: int, *, today: date | None = None
) -> dict:
    """Dashboard snapshot for ``user``.

    A missing group (never assigned, or deleted after assignment) renders
    as pending assignment.
    """
    view = {
        "userId": str(user.id),
        "email": user.email,
        "status": user.status,
        "groupId": str(user.group_id) if user.group_id else None,
        "capacity": capacity,
    }
    if group is None:
        view.update(
            groupName=PENDING_ASSIGNMENT,
            renewalDate=PENDING_ASSIGNMENT,
            memberCount=0,
            progress=0,
            assigned=False,
        )
    else:
        view.update(
            groupName=group.name,
            renewalDate=group.renewal_date.isoformat(),
            memberCount=group.member_count,
            progress=period_progress(group.renewal_date, today),
            assigned=True,
        )
    return view


class MemberGroupView:
    """Holds at most one live subscription to the member's group.

    ``mount(group_id)`` subscribes first and then loads, so an update that
    lands between the two is not lost.  Mounting the same id again keeps
    the existing subscription; mounting another id replaces it.
    """

    def __init__(self, feed: GroupFeed, groups: GroupRepo) -> None:
        self._feed = feed
        self._groups = groups
        self._subscription: GroupSubscription | None = None
        self.group_id: UUID | None = None
        self.group: Group | None = None

    @property
    def is_subscribed(self) -> bool:
        return self._subscription is not None and not self._subscription.closed

    async def mount(self, group_id: UUID | None) -> Group | None:
        if group_id is not None and group_id == self.group_id and self.is_subscribed:
            return self.group

        await self.close()
        self.group_id = group_id
        if group_id is None:
            return None

        self._subscription = await self._feed.subscribe(group_id)
        self.group = await self._groups.get(group_id)
        if self.group is None:
            # Group was deleted while the user still references it
            logger.info("Member view mounted on missing group  group_id=%s", group_id)
            await self._close_subscription()
        return self.group

    async def next_update(self) -> GroupChange:
        """Wait for the next change and apply it to the local snapshot."""
        if not self.is_subscribed:
            raise RuntimeError("member view is not subscribed")
        change = await self._subscription.next()
        self.apply(change)
        if change.deleted:
            await self._close_subscription()
        return change

    def apply(self, change: GroupChange) -> None:
        if change.group_id != self.group_id:
            return
        self.group = change.group

    async def close(self) -> None:
        await self._close_subscription()
        self.group = None

    async def _close_subscription(self) -> None:
        if self._subscription is not None:
            await self._subscription.close()
            self._subscription = None
