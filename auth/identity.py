"""
auth/identity.py -- Identity provider: accounts, passwords and roles.

SecurityService talks to accounts only through this class, never to UserStore
directly, so the identity backend could be replaced without touching login or
registration logic.

Account creation enforces the password policy below and reports every
violation at once as a list of IdentityError values (code + description)
rather than stopping at the first one:

  PasswordTooShort                 fewer than MIN_PASSWORD_LENGTH characters
  PasswordRequiresDigit            no 0-9
  PasswordRequiresLower            no a-z
  PasswordRequiresUpper            no A-Z
  PasswordRequiresNonAlphanumeric  no symbol
  InvalidEmail                     email has no "@"
  DuplicateUserName                username already taken

Layer rule: no imports from api/ or office/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError

from auth.models import IdentityError, IdentityResult, Registration, SystemUser
from auth.store import UserStore
from auth.tokens import DUMMY_HASH, hash_password, verify_password

logger = logging.getLogger("connectedoffice.auth")

MIN_PASSWORD_LENGTH = 6


def _duplicate_username(username: str) -> IdentityError:
    return IdentityError("DuplicateUserName", f"Username '{username}' is already taken.")


def password_errors(password: str) -> list[IdentityError]:
    """Return every password policy violation for password (empty list if it passes)."""
    errors: list[IdentityError] = []
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(
            IdentityError("PasswordTooShort", f"Passwords must be at least {MIN_PASSWORD_LENGTH} characters.")
        )
    if not any(c.isdigit() for c in password):
        errors.append(IdentityError("PasswordRequiresDigit", "Passwords must have at least one digit ('0'-'9')."))
    if not any(c.islower() for c in password):
        errors.append(IdentityError("PasswordRequiresLower", "Passwords must have at least one lowercase ('a'-'z')."))
    if not any(c.isupper() for c in password):
        errors.append(IdentityError("PasswordRequiresUpper", "Passwords must have at least one uppercase ('A'-'Z')."))
    if all(c.isalnum() for c in password):
        errors.append(
            IdentityError("PasswordRequiresNonAlphanumeric", "Passwords must have at least one non alphanumeric character.")
        )
    return errors


class IdentityProvider:
    def __init__(self, store: UserStore) -> None:
        self.store = store

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find_by_name(self, username: str) -> Optional[SystemUser]:
        return self.store.get_by_username(username)

    def find_by_id(self, user_id: UUID) -> Optional[SystemUser]:
        return self.store.get_by_id(user_id)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def create(self, registration: Registration) -> IdentityResult:
        """Create an account for registration, or report why it cannot be created.

        The password is hashed with bcrypt before it reaches the store.
        """
        errors = password_errors(registration.password)
        if "@" not in registration.email:
            errors.append(IdentityError("InvalidEmail", f"Email '{registration.email}' is invalid."))
        if self.store.get_by_username(registration.username) is not None:
            errors.append(_duplicate_username(registration.username))
        if errors:
            return IdentityResult(errors=errors)

        user = SystemUser(
            id=uuid4(),
            username=registration.username,
            email=registration.email,
            phone_number=registration.phone_number,
            hashed_password=hash_password(registration.password),
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        try:
            self.store.create_user(user)
        except IntegrityError:
            # A concurrent registration took the username between the check and the insert.
            return IdentityResult(errors=[_duplicate_username(registration.username)])
        logger.info("Created system user %s (%s)", user.username, user.id)
        return IdentityResult(user=user)

    def check_password(self, user: SystemUser, password: str) -> bool:
        return verify_password(password, user.hashed_password)

    def authenticate(self, username: str, password: str) -> Optional[SystemUser]:
        """Return the user if username/password match, else None.

        Always runs bcrypt whether or not the user exists, so response time
        does not reveal which usernames are registered:
        - Unknown username: bcrypt runs against DUMMY_HASH
        - Wrong password: bcrypt runs against the real hash
        """
        user = self.find_by_name(username)
        if user is None:
            verify_password(password, DUMMY_HASH)
            return None
        if not self.check_password(user, password):
            return None
        return user

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    def get_roles(self, user: SystemUser) -> list[str]:
        return self.store.get_roles(user.id)

    def role_exists(self, name: str) -> bool:
        return self.store.role_exists(name)

    def ensure_role(self, name: str) -> None:
        """Create the role if it does not exist yet."""
        if self.role_exists(name):
            return
        try:
            self.store.create_role(name)
            logger.info("Created role %s", name)
        except IntegrityError:
            # Created concurrently by another registration; the role exists either way.
            logger.debug("Role %s already created concurrently", name)

    def add_to_role(self, user: SystemUser, role_name: str) -> None:
        self.store.add_to_role(user.id, role_name)
