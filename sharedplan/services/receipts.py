"""Simulated receipt upload.

Nothing is stored: the file is validated, turned into a preview and the
request waits RECEIPT_DELAY_SECONDS to mimic an upload.  Members send the
actual receipt through the support chat.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass
from uuid import UUID

from sharedplan.core.metrics import RECEIPTS_SUBMITTED

logger = logging.getLogger(__name__)

MAX_RECEIPT_BYTES = 5 * 1024 * 1024
PDF_CONTENT_TYPE = "application/pdf"


class ReceiptError(ValueError):
    code = "receipt_invalid"


class ReceiptTooLargeError(ReceiptError):
    code = "receipt_too_large"


@dataclass(frozen=True, slots=True)
class ReceiptPreview:
    filename: str
    content_type: str
    size: int
    data_url: str | None = None

    @property
    def kind(self) -> str:
        return "image" if self.data_url is not None else "pdf"

    def to_dict(self) -> dict:
        return {
            "filename": self.filename,
            "contentType": self.content_type,
            "size": self.size,
            "dataUrl": self.data_url,
        }


def build_preview(filename: str | None, content_type: str | None, data: bytes) -> ReceiptPreview:
    """Images get an inline data URL; PDFs are previewed by name only."""
    content_type = (content_type or "").split(";")[0].strip().lower()
    if not data:
        raise ReceiptError("empty file")
    if not (content_type.startswith("image/") or content_type == PDF_CONTENT_TYPE):
        raise ReceiptError(f"unsupported content type {content_type!r}")
    if len(data) > MAX_RECEIPT_BYTES:
        raise ReceiptTooLargeError(f"{len(data)} bytes exceeds {MAX_RECEIPT_BYTES}")

    data_url = None
    if content_type.startswith("image/"):
        encoded = base64.b64encode(data).decode("ascii")
        data_url = f"data:{content_type};base64,{encoded}"

    return ReceiptPreview(
        filename=filename or "comprobante",
        content_type=content_type,
        size=len(data),
        data_url=data_url,
    )


async def submit_receipt(
    user_id: UUID, preview: ReceiptPreview, *, delay: float
) -> ReceiptPreview:
    if delay > 0:
        await asyncio.sleep(delay)
    RECEIPTS_SUBMITTED.labels(kind=preview.kind).inc()
    logger.info(
        "Receipt submitted  user_id=%s filename=%s size=%d",
        user_id,
        preview.filename,
        preview.size,
    )
    return preview
