"""
auth/security.py -- Login, logout, session validity and registration.

Session lifecycle:

    Anonymous --login--> Authenticated (user_session row, logout_date NULL)
    Authenticated --logout--> LoggedOut (logout_date stamped, terminal)

A token stays cryptographically valid after logout until it expires; the
session gate rejects it because is_session_valid() reads the row on every
request.

All operations return core.results.Result. Login failures for an unknown user
and for a wrong password share one message, so the response never reveals
which usernames exist.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from auth.identity import IdentityProvider
from auth.models import (
    ROLE_ADMIN,
    ROLE_USER,
    LoginResult,
    Registration,
    RegistrationResult,
    SystemUser,
    UserProfile,
    UserSession,
)
from auth.session import (
    CLAIM_EMAIL,
    CLAIM_GIVEN_NAME,
    CLAIM_PHONE,
    CLAIM_ROLE,
    CLAIM_SESSION_ID,
    CLAIM_USERNAME,
    EMPTY_SESSION_ID,
)
from auth.store import UserStore
from auth.tokens import create_access_token
from core.results import ErrorKind, Result

logger = logging.getLogger("connectedoffice.auth")

_EMPTY_USER_ID = UUID(int=0)

LOGIN_FAILED_MESSAGE = "Incorrect username and/or password. Please correct and try again"
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred. Please correct and try again"
USER_CREATED_MESSAGE = "System user created successfully"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class SecurityService:
    def __init__(self, identity: IdentityProvider, store: UserStore) -> None:
        self.identity = identity
        self.store = store

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _primary_role(self, user: SystemUser) -> str:
        roles = self.identity.get_roles(user)
        return roles[0] if roles else ROLE_USER

    def _profile(self, user: SystemUser, role: str) -> UserProfile:
        return UserProfile(
            id=user.id,
            username=user.username,
            email=user.email,
            phone_number=user.phone_number,
            role_name=role,
        )

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> Result[LoginResult]:
        """Authenticate, open a session row and issue a token bound to it."""
        if _blank(username):
            return Result.failure(ErrorKind.BAD_REQUEST, "Please specify a valid username")
        if _blank(password):
            return Result.failure(ErrorKind.BAD_REQUEST, "Please specify a valid password")

        user = self.identity.authenticate(username, password)
        if user is None:
            logger.info("Failed login for username %r", username)
            return Result.failure(ErrorKind.UNAUTHORIZED, LOGIN_FAILED_MESSAGE)

        role = self._primary_role(user)
        session = UserSession(session_id=uuid4(), date_created=_now_iso())
        self.store.create_session(session)

        claims = {
            CLAIM_USERNAME: user.username,
            CLAIM_EMAIL: user.email,
            CLAIM_PHONE: user.phone_number,
            CLAIM_GIVEN_NAME: user.username,
            CLAIM_ROLE: role,
            CLAIM_SESSION_ID: str(session.session_id),
        }
        token, expires_at = create_access_token(claims)
        logger.info("User %s logged in (session %s)", user.username, session.session_id)
        return Result.success(
            LoginResult(user=self._profile(user, role), token=token, expires_at=expires_at.isoformat())
        )

    def logout(self, session_id: UUID) -> Result[None]:
        """Close the session if it is active. Always succeeds."""
        if session_id != EMPTY_SESSION_ID and self.store.end_session(session_id, _now_iso()):
            logger.info("Session %s logged out", session_id)
        return Result.success()

    def is_session_valid(self, session_id: UUID) -> bool:
        """True iff a session row exists for session_id and has not been logged out."""
        if session_id == EMPTY_SESSION_ID:
            return False
        session = self.store.get_session(session_id)
        return session is not None and session.is_active

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, registration: Registration, role: str) -> Result[RegistrationResult]:
        """Create an account and assign it role, creating the role on first use."""
        if _blank(registration.username):
            return Result.failure(ErrorKind.BAD_REQUEST, "Please specify a valid username")
        if _blank(registration.password):
            return Result.failure(ErrorKind.BAD_REQUEST, "Please specify a valid password")
        if _blank(registration.email):
            return Result.failure(ErrorKind.BAD_REQUEST, "Please specify a valid email address")
        if _blank(registration.phone_number):
            return Result.failure(ErrorKind.BAD_REQUEST, "Please specify a valid phone number")

        if self.identity.find_by_name(registration.username) is not None:
            return Result.failure(
                ErrorKind.BAD_REQUEST,
                f"A system user already exists with username = '{registration.username}'",
            )

        outcome = self.identity.create(registration)
        if not outcome.succeeded:
            message = "\n".join(
                f"{n}. {e.code}-{e.description}" for n, e in enumerate(outcome.errors, start=1)
            )
            return Result.failure(ErrorKind.BAD_REQUEST, message or UNKNOWN_ERROR_MESSAGE)

        user = outcome.user
        self.identity.ensure_role(role)
        self.identity.add_to_role(user, role)
        logger.info("Registered %s as %s", user.username, role)
        return Result.success(RegistrationResult(message=USER_CREATED_MESSAGE, user=self._profile(user, role)))

    def register_admin(self, registration: Registration) -> Result[RegistrationResult]:
        return self.register(registration, ROLE_ADMIN)

    def register_user(self, registration: Registration) -> Result[RegistrationResult]:
        return self.register(registration, ROLE_USER)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_user_by_id(self, user_id: UUID) -> Result[UserProfile]:
        if user_id == _EMPTY_USER_ID:
            return Result.failure(ErrorKind.BAD_REQUEST, f"The user-id specified is not valid (id = '{user_id}')")
        user = self.identity.find_by_id(user_id)
        if user is None:
            return Result.failure(ErrorKind.NOT_FOUND, f"No system user with id = '{user_id}' has been found")
        return Result.success(self._profile(user, self._primary_role(user)))
