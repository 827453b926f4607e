"""
API request and response models for the Connected Office security and health
endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal identity representation. Route handlers map between the two.

The Category/Zone/Device transport objects live in office/dtos.py because the
resource services accept and return them directly.

Separation of concerns: auth/ models = domain truth; api/ models = API contract.
"""

from typing import Annotated, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from auth.models import LoginResult, Registration, RegistrationResult, UserProfile

# Identity fields are trimmed. Passwords are taken byte-for-byte.
Trimmed = Annotated[str, StringConstraints(strip_whitespace=True)]

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/security/login.

    Fields default to "" rather than being required so a missing field reaches
    SecurityService.login() and gets its specific message, not a 400 from
    request validation.
    """

    username: Optional[Trimmed] = Field(default="", max_length=255)
    password: Optional[str] = Field(default="", max_length=128)


class RegistrationRequest(BaseModel):
    """Request body for POST /api/security/register-admin and register-user."""

    username: Optional[Trimmed] = Field(default="", max_length=255)
    password: Optional[str] = Field(default="", max_length=128)
    email: Optional[Trimmed] = Field(default="", max_length=255)
    phone_number: Optional[Trimmed] = Field(default="", max_length=50)

    def to_registration(self) -> Registration:
        return Registration(
            username=self.username or "",
            password=self.password or "",
            email=self.email or "",
            phone_number=self.phone_number or "",
        )


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public profile of a system user. Never includes the password hash."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    username: str
    email: str
    phone_number: str
    role_name: str

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "UserResponse":
        return cls(
            id=profile.id,
            username=profile.username,
            email=profile.email,
            phone_number=profile.phone_number,
            role_name=profile.role_name,
        )


class LoginResponse(BaseModel):
    """Response for POST /api/security/login."""

    model_config = ConfigDict(frozen=True)

    user: UserResponse
    token: str
    expires_at: str

    @classmethod
    def from_result(cls, result: LoginResult) -> "LoginResponse":
        return cls(user=UserResponse.from_profile(result.user), token=result.token, expires_at=result.expires_at)


class RegistrationResponse(BaseModel):
    """Response for POST /api/security/register-admin and register-user."""

    model_config = ConfigDict(frozen=True)

    message: str
    user: UserResponse

    @classmethod
    def from_result(cls, result: RegistrationResult) -> "RegistrationResponse":
        return cls(message=result.message, user=UserResponse.from_profile(result.user))


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class HealthResponse(BaseModel):
    """Response for GET /api/health.

    status is "healthy" when every component answers, "degraded" otherwise.
    """

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
