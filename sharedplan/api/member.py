"""Member dashboard API (/v1/me/*)."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from sharedplan.api.dependencies import get_directory, get_identity_gateway, require_user
from sharedplan.api.errors import notice_error
from sharedplan.core.config import SETTINGS
from sharedplan.core.notices import notice
from sharedplan.models.principal import Principal
from sharedplan.models.user import User
from sharedplan.repos.errors import StoreError
from sharedplan.services import payments, receipts
from sharedplan.services.directory import Directory
from sharedplan.services.identity import IdentityGateway, UnknownSessionError
from sharedplan.services.member_console import MemberGroupView, group_view

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/me", tags=["member"])

KEEPALIVE_SECONDS = 15.0

Member = Annotated[Principal, Depends(require_user)]
Dir = Annotated[Directory, Depends(get_directory)]
Gateway = Annotated[IdentityGateway, Depends(get_identity_gateway)]


class PaymentOut(BaseModel):
    date: str
    amount: int
    status: str
    method: str


async def _load_user(principal: Principal, gateway: IdentityGateway) -> User:
    try:
        return await gateway.current_user(principal)
    except UnknownSessionError:
        raise notice_error(status.HTTP_401_UNAUTHORIZED, "login_failed") from None


def _sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


@router.get("")
async def me(principal: Member, gateway: Gateway, directory: Dir) -> dict:
    user = await _load_user(principal, gateway)
    group = await directory.groups.get(user.group_id) if user.group_id else None
    return group_view(user, group, SETTINGS.group_capacity)


@router.get("/group/events")
async def group_events(
    request: Request, principal: Member, gateway: Gateway, directory: Dir
) -> StreamingResponse:
    """Server-Sent Events: one ``group`` event now and one per change.

    The stream ends after the group is deleted (the last event shows the
    pending-assignment view) or when the client disconnects.
    """
    user = await _load_user(principal, gateway)

    async def _stream() -> AsyncIterator[str]:
        view = MemberGroupView(directory.feed, directory.groups)
        try:
            try:
                await view.mount(user.group_id)
            except StoreError:
                logger.exception("Group stream could not load  user_id=%s", user.id)
                yield _sse("error", notice("load_failed").as_detail())
                return
            yield _sse("group", group_view(user, view.group, SETTINGS.group_capacity))
            while view.is_subscribed:
                if await request.is_disconnected():
                    break
                try:
                    await asyncio.wait_for(view.next_update(), KEEPALIVE_SECONDS)
                except TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield _sse(
                    "group", group_view(user, view.group, SETTINGS.group_capacity)
                )
        finally:
            await view.close()

    return StreamingResponse(
        _stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/payments", response_model=list[PaymentOut])
async def payment_history(principal: Member) -> list[PaymentOut]:
    return [
        PaymentOut(
            date=p.date.isoformat(), amount=p.amount, status=p.status, method=p.method
        )
        for p in payments.payment_history()
    ]


@router.post("/receipts")
async def upload_receipt(
    principal: Member, file: Annotated[UploadFile, File()]
) -> dict:
    # One byte past the limit is enough to reject
    data = await file.read(receipts.MAX_RECEIPT_BYTES + 1)
    try:
        preview = receipts.build_preview(file.filename, file.content_type, data)
    except receipts.ReceiptError as e:
        raise notice_error(status.HTTP_422_UNPROCESSABLE_CONTENT, e.code) from None

    await receipts.submit_receipt(
        principal.user_uuid, preview, delay=SETTINGS.receipt_delay_seconds
    )
    return {
        "notice": notice("receipt_sent").as_detail(),
        "preview": preview.to_dict(),
    }
