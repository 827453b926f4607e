"""
api/middleware.py -- Session gate: re-validates the caller's session on every request.

A signed, unexpired token is not enough on its own. The session it was issued
for must still be open in the user_session table, so logout takes effect
immediately even though the token would otherwise verify until it expires.

Per request:
  1. No token, or a token that fails verification -> anonymous, pass through.
     Role-gated routes answer 401 themselves.
  2. Build a SessionContext from the claims. A missing or malformed session-id
     claim becomes EMPTY_SESSION_ID.
  3. EMPTY_SESSION_ID, or no open session row -> 401 plain text that also
     expires the access_token cookie; the route handler never runs.
  4. Otherwise attach the context to request.state.session and continue.

The store read is blocking SQLAlchemy, so it runs in the threadpool.
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from auth.dependencies import read_token_claims
from auth.security import SecurityService
from auth.session import SessionContext
from auth.tokens import clear_auth_cookie

logger = logging.getLogger("connectedoffice.api")

SESSION_EXPIRED_MESSAGE = "Your session expired. Please re-authenticate and try again"


async def session_gate(request: Request, call_next):
    claims = read_token_claims(request)
    if claims is None:
        return await call_next(request)

    session = SessionContext.from_claims(claims)
    security: SecurityService = request.app.state.security_service
    if not session.has_session or not await run_in_threadpool(security.is_session_valid, session.session_id):
        logger.info("Rejected token for %s: session %s is not active", session.username, session.session_id)
        response = PlainTextResponse(SESSION_EXPIRED_MESSAGE, status_code=401)
        clear_auth_cookie(response)
        return response

    request.state.session = session
    return await call_next(request)
