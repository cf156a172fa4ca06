"""Admin console API (/v1/admin/*). Every route requires the admin role."""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel

from sharedplan.api.dependencies import (
    get_approval_workflow,
    get_directory,
    require_role,
)
from sharedplan.api.errors import notice_error
from sharedplan.api.schemas import GroupOut, PendingUserOut
from sharedplan.core.config import SETTINGS
from sharedplan.models.principal import Principal
from sharedplan.repos.errors import (
    GroupFullError,
    GroupNotFoundError,
    StoreError,
    UserNotFoundError,
)
from sharedplan.services import groups_service, users_service
from sharedplan.services.approval_service import (
    ApprovalFailedError,
    ApprovalWorkflow,
    GroupNotSelectedError,
    UserAlreadyApprovedError,
)
from sharedplan.services.directory import Directory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["admin"])

Admin = Annotated[Principal, Depends(require_role("admin"))]
Dir = Annotated[Directory, Depends(get_directory)]
Workflow = Annotated[ApprovalWorkflow, Depends(get_approval_workflow)]


class GroupIn(BaseModel):
    name: str | None = None
    renewalDate: str | None = None


class ApprovalIn(BaseModel):
    userId: UUID
    groupId: str | None = None


class ApprovalOut(BaseModel):
    userId: str
    status: str
    group: GroupOut


class ReconcileOut(BaseModel):
    repaired: list[str]
    reverted: list[str]
    dangling: list[str]


def parse_group_choice(raw: str | None) -> UUID | None:
    """Blank means "no group selected"; anything else must be a UUID."""
    raw = (raw or "").strip()
    if not raw:
        return None
    try:
        return UUID(raw)
    except ValueError:
        raise notice_error(status.HTTP_404_NOT_FOUND, "group_not_found") from None


@router.get("/users/pending", response_model=list[PendingUserOut])
async def pending_users(
    principal: Admin, directory: Dir, q: str = Query("", max_length=320)
) -> list[PendingUserOut]:
    users = await users_service.list_pending_users(directory.users, q)
    return [PendingUserOut.of(u) for u in users]


@router.get("/groups", response_model=list[GroupOut])
async def list_groups(principal: Admin, directory: Dir) -> list[GroupOut]:
    groups = await groups_service.list_groups(directory.groups)
    return [GroupOut.of(g, SETTINGS.group_capacity) for g in groups]


@router.get("/groups/selectable", response_model=list[GroupOut])
async def selectable_groups(principal: Admin, directory: Dir) -> list[GroupOut]:
    groups = await groups_service.selectable_groups(
        directory.groups, SETTINGS.group_capacity
    )
    return [GroupOut.of(g, SETTINGS.group_capacity) for g in groups]


@router.post("/groups", response_model=GroupOut, status_code=status.HTTP_201_CREATED)
async def create_group(payload: GroupIn, principal: Admin, directory: Dir) -> GroupOut:
    try:
        group = await groups_service.create_group(
            directory.groups, payload.name, payload.renewalDate
        )
    except groups_service.GroupValidationError:
        raise notice_error(
            status.HTTP_422_UNPROCESSABLE_CONTENT, "fill_all_fields"
        ) from None
    except StoreError:
        logger.exception("Group creation failed")
        raise notice_error(
            status.HTTP_503_SERVICE_UNAVAILABLE, "group_create_failed"
        ) from None
    logger.info("Group %s created by admin=%s", group.id, principal.user_id)
    return GroupOut.of(group, SETTINGS.group_capacity)


@router.delete("/groups/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(
    group_id: UUID,
    principal: Admin,
    directory: Dir,
    confirm: bool = Query(False),
) -> Response:
    try:
        await groups_service.delete_group(directory.groups, group_id, confirmed=confirm)
    except groups_service.ConfirmationRequiredError:
        raise notice_error(
            status.HTTP_428_PRECONDITION_REQUIRED, "confirm_delete"
        ) from None
    except GroupNotFoundError:
        raise notice_error(status.HTTP_404_NOT_FOUND, "group_not_found") from None
    except StoreError:
        logger.exception("Group deletion failed  group_id=%s", group_id)
        raise notice_error(
            status.HTTP_503_SERVICE_UNAVAILABLE, "group_delete_failed"
        ) from None
    logger.info("Group %s deleted by admin=%s", group_id, principal.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/approvals", response_model=ApprovalOut)
async def approve_user(
    payload: ApprovalIn, principal: Admin, workflow: Workflow
) -> ApprovalOut:
    group_id = parse_group_choice(payload.groupId)
    try:
        result = await workflow.approve(payload.userId, group_id)
    except GroupNotSelectedError:
        raise notice_error(
            status.HTTP_422_UNPROCESSABLE_CONTENT, "select_group"
        ) from None
    except UserNotFoundError:
        raise notice_error(status.HTTP_404_NOT_FOUND, "user_not_found") from None
    except UserAlreadyApprovedError:
        raise notice_error(status.HTTP_409_CONFLICT, "user_not_pending") from None
    except GroupNotFoundError:
        raise notice_error(status.HTTP_404_NOT_FOUND, "group_not_found") from None
    except GroupFullError:
        raise notice_error(status.HTTP_409_CONFLICT, "group_full") from None
    except ApprovalFailedError as e:
        if isinstance(e.cause, GroupFullError):
            # Lost the last seat to a concurrent approval
            raise notice_error(status.HTTP_409_CONFLICT, "group_full") from None
        raise notice_error(
            status.HTTP_503_SERVICE_UNAVAILABLE, "approval_failed"
        ) from None
    except StoreError:
        logger.exception("Approval precondition read failed")
        raise notice_error(
            status.HTTP_503_SERVICE_UNAVAILABLE, "approval_failed"
        ) from None

    return ApprovalOut(
        userId=str(result.user.id),
        status=result.user.status,
        group=GroupOut.of(result.group, workflow.capacity),
    )


@router.post("/reconcile", response_model=ReconcileOut)
async def reconcile(principal: Admin, workflow: Workflow) -> ReconcileOut:
    try:
        report = await workflow.reconcile()
    except StoreError:
        logger.exception("Reconcile failed")
        raise notice_error(
            status.HTTP_503_SERVICE_UNAVAILABLE, "approval_failed"
        ) from None
    logger.info("Reconcile run by admin=%s", principal.user_id)
    return ReconcileOut(
        repaired=[str(u) for u in report.repaired],
        reverted=[str(u) for u in report.reverted],
        dangling=[str(u) for u in report.dangling],
    )
