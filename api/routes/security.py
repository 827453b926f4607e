"""
api/routes/security.py -- Login, logout, registration and user lookup endpoints.

Routes:
  POST   /security/login                 -- password login; returns token and sets JWT cookie
  DELETE /security/logout                -- ends the session row; clears cookie
  POST   /security/register-admin        -- create an account in the Admin role
  POST   /security/register-user         -- create an account in the User role
  GET    /security/get-user-by-id/{id}   -- public profile of a system user

Security:
  POST /login is rate-limited per client IP (Settings.login_rate_limit).
  Wrong username and wrong password produce the same 401 message.
  Cache-Control: no-store on login responses so the token is never cached.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_limit
from api.models import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegistrationRequest,
    RegistrationResponse,
    UserResponse,
)
from auth.dependencies import require_roles
from auth.models import ROLE_ADMIN, ROLE_USER
from auth.security import SecurityService
from auth.session import SessionContext
from auth.tokens import clear_auth_cookie, set_auth_cookie
from core.results import unwrap

# Auth policy:
# - POST   /security/login:              public (rate limited)
# - POST   /security/register-admin:     public
# - POST   /security/register-user:      public
# - DELETE /security/logout:             Admin or User
# - GET    /security/get-user-by-id/{id}: Admin or User
router = APIRouter(prefix="/security")

_signed_in = require_roles(ROLE_ADMIN, ROLE_USER)


def _service(request: Request) -> SecurityService:
    return request.app.state.security_service


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/login", response_model=LoginResponse)
@limiter.limit(login_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password.

    On success a new session row is opened, and the token bound to it is
    returned in the body and set as an httpOnly cookie.
    """
    result = unwrap(_service(request).login(body.username or "", body.password or ""))
    resp = JSONResponse(status_code=200, content=LoginResponse.from_result(result).model_dump(mode="json"))
    set_auth_cookie(resp, result.token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/register-admin", response_model=RegistrationResponse, status_code=201)
def register_admin(request: Request, body: RegistrationRequest) -> RegistrationResponse:
    result = unwrap(_service(request).register_admin(body.to_registration()))
    return RegistrationResponse.from_result(result)


@router.post("/register-user", response_model=RegistrationResponse, status_code=201)
def register_user(request: Request, body: RegistrationRequest) -> RegistrationResponse:
    result = unwrap(_service(request).register_user(body.to_registration()))
    return RegistrationResponse.from_result(result)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.delete("/logout", response_model=MessageResponse)
def logout(request: Request, session: SessionContext = Depends(_signed_in)) -> JSONResponse:
    """End the caller's session. The token stops working immediately."""
    unwrap(_service(request).logout(session.session_id))
    resp = JSONResponse(content=MessageResponse(message="User has been successfully logged out").model_dump())
    clear_auth_cookie(resp)
    return resp


@router.get("/get-user-by-id/{id}", response_model=UserResponse, dependencies=[Depends(_signed_in)])
def get_user_by_id(request: Request, id: UUID) -> UserResponse:
    return UserResponse.from_profile(unwrap(_service(request).get_user_by_id(id)))
