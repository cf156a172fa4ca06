"""JSON identity endpoints (/auth/*).

Sign-up and both sign-in flavours return the same body:
``{accessToken, home, user}``; the client keeps the token in memory and
navigates to ``home``.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from sharedplan.api.dependencies import (
    SESSION_COOKIE,
    SESSION_FLAG_COOKIE,
    get_identity_gateway,
    optional_user,
    require_user,
)
from sharedplan.api.errors import notice_error
from sharedplan.api.ratelimit import SIGN_IN_LIMIT, require_rate_limit
from sharedplan.models.principal import Principal
from sharedplan.models.user import User
from sharedplan.services.identity import (
    EmailTakenError,
    GoogleSignInError,
    IdentityGateway,
    InvalidCredentialsError,
    RegistrationError,
    Session,
    UnknownSessionError,
    resolve_home,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

_sign_in_limit = require_rate_limit(SIGN_IN_LIMIT)

Gateway = Annotated[IdentityGateway, Depends(get_identity_gateway)]


class CredentialsIn(BaseModel):
    email: str
    password: str


class GoogleIn(BaseModel):
    idToken: str


class UserOut(BaseModel):
    id: str
    email: str
    name: str
    status: str
    groupId: str | None
    roles: list[str]

    @staticmethod
    def of(user: User) -> UserOut:
        return UserOut(
            id=str(user.id),
            email=user.email,
            name=user.name,
            status=user.status,
            groupId=str(user.group_id) if user.group_id else None,
            roles=list(user.roles),
        )


class SessionOut(BaseModel):
    accessToken: str
    home: str
    user: UserOut

    @staticmethod
    def of(session: Session) -> SessionOut:
        return SessionOut(
            accessToken=session.access_token,
            home=session.home,
            user=UserOut.of(session.user),
        )


class CurrentSessionOut(BaseModel):
    home: str
    user: UserOut


@router.post(
    "/register",
    response_model=SessionOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(_sign_in_limit)],
)
async def register(payload: CredentialsIn, gateway: Gateway) -> SessionOut:
    try:
        session = await gateway.sign_up(payload.email, payload.password)
    except RegistrationError as e:
        raise notice_error(status.HTTP_422_UNPROCESSABLE_CONTENT, e.code) from None
    except EmailTakenError:
        raise notice_error(status.HTTP_409_CONFLICT, "email_taken") from None
    return SessionOut.of(session)


@router.post(
    "/login", response_model=SessionOut, dependencies=[Depends(_sign_in_limit)]
)
async def login(payload: CredentialsIn, gateway: Gateway) -> SessionOut:
    try:
        session = await gateway.sign_in_with_email(payload.email, payload.password)
    except InvalidCredentialsError:
        raise notice_error(
            status.HTTP_401_UNAUTHORIZED,
            "login_failed",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    return SessionOut.of(session)


@router.post(
    "/google", response_model=SessionOut, dependencies=[Depends(_sign_in_limit)]
)
async def google_login(payload: GoogleIn, gateway: Gateway) -> SessionOut:
    try:
        session = await gateway.sign_in_with_google(payload.idToken)
    except GoogleSignInError:
        raise notice_error(status.HTTP_401_UNAUTHORIZED, "google_login_failed") from None
    return SessionOut.of(session)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    principal: Annotated[Principal | None, Depends(optional_user)],
    gateway: Gateway,
) -> Response:
    """Revoke the presented token and clear the browser cookies.

    Idempotent: an invalid or already revoked token still gets a 204.
    """
    if principal is not None:
        await gateway.sign_out(principal)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(SESSION_FLAG_COOKIE, path="/")
    return response


@router.get("/session", response_model=CurrentSessionOut)
async def current_session(
    principal: Annotated[Principal, Depends(require_user)],
    gateway: Gateway,
) -> CurrentSessionOut:
    try:
        user = await gateway.current_user(principal)
    except UnknownSessionError:
        raise notice_error(status.HTTP_401_UNAUTHORIZED, "login_failed") from None
    return CurrentSessionOut(home=resolve_home(user), user=UserOut.of(user))
