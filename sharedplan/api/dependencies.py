from __future__ import annotations

import logging
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from sharedplan.models.principal import Principal
from sharedplan.services import token_service
from sharedplan.services.approval_service import ApprovalWorkflow, approval_workflow
from sharedplan.services.directory import Directory, directory
from sharedplan.services.identity import IdentityGateway, identity_gateway
from sharedplan.services.token_blacklist import token_blacklist

logger = logging.getLogger(__name__)

SESSION_COOKIE = "session"
# Readable by page scripts; only says "a session exists"
SESSION_FLAG_COOKIE = "authSession"

# auto_error=False: browser requests (the dashboard event stream) carry the
# session cookie instead of a bearer header.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def get_directory() -> Directory:
    return directory


def get_identity_gateway() -> IdentityGateway:
    return identity_gateway


def get_approval_workflow() -> ApprovalWorkflow:
    return approval_workflow


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _principal(claims: dict) -> Principal:
    return Principal(
        user_id=claims["sub"],
        roles=frozenset(claims.get("roles", [])),
        jti=claims.get("jti"),
        exp=claims.get("exp"),
    )


async def require_user(
    request: Request,
    raw_token: Annotated[str | None, Depends(oauth2_scheme)],
) -> Principal:
    """Validate the bearer token (or, failing that, the session cookie)
    and return its Principal. Revoked tokens are rejected."""
    try:
        if raw_token:
            claims = token_service.decode_access_token(raw_token)
        else:
            cookie = request.cookies.get(SESSION_COOKIE)
            if not cookie:
                raise _unauthorized("Not authenticated")
            claims = token_service.decode_session_token(cookie)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise _unauthorized("Token expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise _unauthorized("Invalid token") from None

    principal = _principal(claims)
    if principal.jti and await token_blacklist.is_revoked(principal.jti):
        logger.warning("Revoked token rejected  user_id=%s", principal.user_id)
        raise _unauthorized("Token has been revoked")

    logger.debug(
        "Token validated for user=%s roles=%s", principal.user_id, principal.roles
    )
    return principal


def require_role(role: str):
    """Dependency factory: ``Depends(require_role("admin"))`` → 403 without it."""

    async def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_role(role):
            logger.warning(
                "Access denied: user=%s missing role=%s", principal.user_id, role
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


async def get_page_principal(request: Request) -> Principal | None:
    """Principal from the session cookie, or None. Pages redirect on None."""
    cookie = request.cookies.get(SESSION_COOKIE)
    if not cookie:
        return None
    try:
        claims = token_service.decode_session_token(cookie)
    except jwt.InvalidTokenError:
        logger.debug("Invalid or expired session cookie")
        return None
    principal = _principal(claims)
    if principal.jti and await token_blacklist.is_revoked(principal.jti):
        return None
    return principal


async def optional_user(
    request: Request,
    raw_token: Annotated[str | None, Depends(oauth2_scheme)],
) -> Principal | None:
    """Like require_user, but None instead of 401. Used by sign-out."""
    try:
        return await require_user(request, raw_token)
    except HTTPException:
        return None
