"""
auth/models.py -- Domain dataclasses for identity and session entities.

Pattern: Data class (pure data container, zero logic). Mirrors office/models.py:
dataclasses own domain shape; stores and services do the work.

SystemUser ids and UserSession ids are server-generated GUIDs (uuid4), unlike
the inventory resources whose ids come from the caller.

Layer rule: no imports from api/ or office/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional
from uuid import UUID

ROLE_ADMIN = "Admin"
ROLE_USER = "User"


@dataclass
class SystemUser:
    """An account known to the identity provider.

    username is unique and case-sensitive. Roles are held in the user_roles
    association table, not on this record; see IdentityProvider.get_roles().
    """

    id: UUID
    username: str
    email: str
    phone_number: str
    hashed_password: str
    created_at: str = ""


@dataclass
class UserSession:
    """One login. Active while logout_date is None; once set it never clears."""

    session_id: UUID
    date_created: str
    logout_date: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.logout_date is None


@dataclass
class Registration:
    username: str = ""
    password: str = ""
    email: str = ""
    phone_number: str = ""


@dataclass(frozen=True)
class IdentityError:
    """A single reason the identity provider refused to create an account."""

    code: str
    description: str


@dataclass
class UserProfile:
    """The public view of a SystemUser: never carries the password hash."""

    id: UUID
    username: str
    email: str
    phone_number: str
    role_name: str


@dataclass
class LoginResult:
    user: UserProfile
    token: str
    expires_at: str


@dataclass
class RegistrationResult:
    message: str
    user: UserProfile


@dataclass
class IdentityResult:
    """Outcome of IdentityProvider.create(): either a user or a list of errors."""

    user: Optional[SystemUser] = None
    errors: list[IdentityError] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.user is not None and not self.errors
