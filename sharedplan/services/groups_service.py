from __future__ import annotations

import logging
from datetime import date
from uuid import UUID

from sharedplan.models.group import Group
from sharedplan.repos.errors import GroupNotFoundError
from sharedplan.repos.group_repo import GroupRepo

logger = logging.getLogger(__name__)


class GroupValidationError(ValueError):
    code = "fill_all_fields"


class ConfirmationRequiredError(Exception):
    code = "confirm_delete"


def parse_renewal_date(raw: str | date | None) -> date | None:
    """Accept a date or an ISO ``YYYY-MM-DD`` string; blank means missing."""
    if raw is None or isinstance(raw, date):
        return raw
    raw = raw.strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise GroupValidationError(f"renewal date {raw!r} is not YYYY-MM-DD") from None


async def create_group(
    groups: GroupRepo, name: str | None, renewal_date: str | date | None
) -> Group:
    """Create an empty group. Both fields are required; names need not be unique."""
    clean_name = (name or "").strip()
    parsed_date = parse_renewal_date(renewal_date)
    if not clean_name or parsed_date is None:
        logger.warning("Rejected group without name or renewal date")
        raise GroupValidationError("name and renewal date are required")

    group = Group.new(name=clean_name, renewal_date=parsed_date)
    await groups.add(group)
    logger.info(
        "Group created  group_id=%s name=%s renewal=%s",
        group.id,
        group.name,
        group.renewal_date,
    )
    return group


async def delete_group(groups: GroupRepo, group_id: UUID, *, confirmed: bool) -> None:
    """Hard-delete a group.

    Users that reference the group keep their ``group_id``; their
    dashboards fall back to "pending assignment".
    """
    if not confirmed:
        raise ConfirmationRequiredError(str(group_id))
    if not await groups.delete(group_id):
        raise GroupNotFoundError(group_id)
    logger.info("Group deleted  group_id=%s", group_id)


async def list_groups(groups: GroupRepo) -> list[Group]:
    return await groups.list_all()


async def selectable_groups(groups: GroupRepo, capacity: int) -> list[Group]:
    """Groups that can take one more member; the only ones offered for approval."""
    return [g for g in await groups.list_all() if g.has_room(capacity)]
