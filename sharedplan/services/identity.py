"""Identity gateway: sign-up, sign-in (password or Google), sign-out.

A successful sign-in produces a Session value owned by the caller: the
JSON API hands its access token to the client, the pages put its session
token in a cookie.  Signing out revokes the token's ``jti``.  Nothing
here is kept in module-level "current user" state; routes receive the
authenticated Principal through dependency injection.

Roles are a stored attribute of the user.  Accounts created for one of
the configured ADMIN_EMAILS get the ``admin`` role, everyone else the ``user`` role.
Every account starts pending; only the approval workflow approves it.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from uuid import UUID

from sharedplan.core.config import SETTINGS
from sharedplan.core.metrics import SIGN_INS
from sharedplan.models.principal import Principal
from sharedplan.models.user import PENDING, User
from sharedplan.repos.errors import DuplicateEmailError
from sharedplan.repos.user_repo import UserRepo
from sharedplan.services import auth_service, token_service
from sharedplan.services.directory import directory
from sharedplan.services.oauth import (
    GoogleIdTokenVerifier,
    IdentityTokenError,
    IdentityTokenVerifier,
)
from sharedplan.services.token_blacklist import TokenBlacklist, token_blacklist

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

ADMIN_HOME = "/admin"
MEMBER_HOME = "/dashboard"


class IdentityError(Exception):
    """Base class; ``code`` is the notice shown to the user."""

    code = "login_failed"


class InvalidCredentialsError(IdentityError):
    code = "login_failed"


class GoogleSignInError(IdentityError):
    code = "google_login_failed"


class RegistrationError(IdentityError, ValueError):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


class EmailTakenError(IdentityError):
    code = "email_taken"


class UnknownSessionError(IdentityError):
    """The token is valid but its subject no longer exists."""


@dataclass(frozen=True, slots=True)
class Session:
    user: User
    access_token: str
    session_token: str

    @property
    def home(self) -> str:
        return resolve_home(self.user)


def resolve_home(user: User) -> str:
    """Route a signed-in user to the admin console or the member dashboard."""
    return ADMIN_HOME if user.is_admin else MEMBER_HOME


def normalize_email(email: str) -> str:
    return email.strip().lower()


class IdentityGateway:
    def __init__(
        self,
        users: UserRepo,
        *,
        admin_emails: frozenset[str],
        verifier: IdentityTokenVerifier,
        blacklist: TokenBlacklist,
    ) -> None:
        self._users = users
        self._admin_emails = admin_emails
        self._verifier = verifier
        self._blacklist = blacklist

    async def sign_up(self, email: str, password: str) -> Session:
        email = normalize_email(email)
        if not _EMAIL_RE.match(email):
            raise RegistrationError("invalid_email", "Invalid email address")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise RegistrationError(
                "weak_password",
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            )
        if await self._users.get_by_email(email) is not None:
            raise EmailTakenError(email)

        user = self._new_user(
            email=email, password_hash=auth_service.hash_password(password)
        )
        try:
            await self._users.add(user)
        except DuplicateEmailError:
            # Lost a race with a concurrent sign-up for the same email
            raise EmailTakenError(email) from None

        logger.info(
            "User registered  user_id=%s email=%s status=%s",
            user.id,
            email,
            user.status,
        )
        return self._open_session(user)

    async def sign_in_with_email(self, email: str, password: str) -> Session:
        email = normalize_email(email)
        user = await auth_service.authenticate_user(self._users, email, password)
        if user is None:
            SIGN_INS.labels(provider="password", outcome="failed").inc()
            logger.warning("Sign-in failed  email=%s", email)
            raise InvalidCredentialsError(email)

        SIGN_INS.labels(provider="password", outcome="ok").inc()
        logger.info("Sign-in succeeded  user_id=%s email=%s", user.id, email)
        return self._open_session(user)

    async def sign_in_with_google(self, id_token: str) -> Session:
        try:
            # JWKS fetch is blocking I/O
            identity = await asyncio.to_thread(self._verifier.verify, id_token)
        except IdentityTokenError as e:
            SIGN_INS.labels(provider="google", outcome="failed").inc()
            logger.warning("Google sign-in rejected: %s", e)
            raise GoogleSignInError(str(e)) from None

        email = normalize_email(identity.email)
        user = await self._users.get_by_email(email)
        if user is None:
            user = self._new_user(email=email, name=identity.name)
            try:
                await self._users.add(user)
            except DuplicateEmailError:
                existing = await self._users.get_by_email(email)
                if existing is None:
                    raise GoogleSignInError(email) from None
                user = existing
            else:
                logger.info(
                    "User created on first Google sign-in  user_id=%s email=%s",
                    user.id,
                    email,
                )

        SIGN_INS.labels(provider="google", outcome="ok").inc()
        return self._open_session(user)

    async def sign_out(self, principal: Principal) -> None:
        """Revoke the token behind ``principal``. Idempotent."""
        if principal.jti and principal.exp:
            await self._blacklist.revoke(principal.jti, principal.exp)
            logger.info(
                "Session ended  user_id=%s jti=%s", principal.user_id, principal.jti
            )

    async def current_user(self, principal: Principal) -> User:
        try:
            user_id = UUID(principal.user_id)
        except ValueError:
            raise UnknownSessionError(principal.user_id) from None
        user = await self._users.get_by_id(user_id)
        if user is None:
            raise UnknownSessionError(principal.user_id)
        return user

    def _new_user(
        self, *, email: str, password_hash: str | None = None, name: str = ""
    ) -> User:
        roles = ("admin",) if email in self._admin_emails else ("user",)
        return User.new(
            email=email,
            password_hash=password_hash,
            name=name,
            roles=roles,
            status=PENDING,
        )

    def _open_session(self, user: User) -> Session:
        roles = list(user.roles) or ["user"]
        return Session(
            user=user,
            access_token=token_service.create_access_token(
                sub=str(user.id), roles=roles
            ),
            session_token=token_service.create_session_token(
                sub=str(user.id), roles=roles
            ),
        )


identity_gateway = IdentityGateway(
    directory.users,
    admin_emails=SETTINGS.admin_emails,
    verifier=GoogleIdTokenVerifier(SETTINGS.google_client_id),
    blacklist=token_blacklist,
)
