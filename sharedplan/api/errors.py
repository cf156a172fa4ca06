from __future__ import annotations

from fastapi import HTTPException

from sharedplan.core.notices import notice


def notice_error(status_code: int, code: str, headers: dict | None = None) -> HTTPException:
    """HTTPException whose detail is the ``{"code", "message"}`` notice."""
    return HTTPException(
        status_code=status_code, detail=notice(code).as_detail(), headers=headers
    )
