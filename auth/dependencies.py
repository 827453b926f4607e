"""
auth/dependencies.py -- Token extraction and FastAPI Depends() helpers.

Tokens are read in priority order:
  1. JWT cookie ("access_token") -- set by POST /api/security/login.
  2. Authorization: Bearer <token> header -- API clients.

The session gate middleware calls read_token_claims() once per request and
stores the resulting SessionContext on request.state.session. Handlers never
decode the token again; they use the dependencies below:

  current_session()        soft variant, returns None for anonymous requests
  require_roles(*roles)    401 if anonymous, 403 if the role is not allowed

Layer rule: no imports from api/ or office/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Optional

from fastapi import HTTPException, Request

from auth.session import SessionContext
from auth.tokens import COOKIE_NAME, decode_access_token


def read_token(request: Request) -> Optional[str]:
    """Return the raw JWT from the cookie or the Bearer header, or None."""
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:].strip()
    return token or None


def read_token_claims(request: Request) -> Optional[dict]:
    """Return the verified claims of the request's token, or None if absent or invalid."""
    token = read_token(request)
    if token is None:
        return None
    return decode_access_token(token)


def current_session(request: Request) -> Optional[SessionContext]:
    """The SessionContext attached by the session gate, or None for anonymous requests."""
    return getattr(request.state, "session", None)


def require_roles(*roles: str) -> Callable[[Request], SessionContext]:
    """Build a dependency that admits only authenticated callers holding one of roles.

    Use as a FastAPI dependency:
        @router.get("/admin-only")
        def route(session: SessionContext = Depends(require_roles("Admin"))): ...
    """
    allowed = frozenset(roles)

    def dependency(request: Request) -> SessionContext:
        session = current_session(request)
        if session is None:
            raise HTTPException(status_code=401, detail="Authentication required.")
        if session.role not in allowed:
            raise HTTPException(status_code=403, detail="You do not have permission to access this resource.")
        return session

    return dependency
