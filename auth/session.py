"""
auth/session.py -- Per-request session context built from verified token claims.

The session gate (api/middleware.py) builds one SessionContext per request and
stores it on request.state.session. It is frozen: nothing downstream can change
the identity a request was authenticated with, and no instance outlives its
request.

A missing or unparsable session-id claim maps to EMPTY_SESSION_ID, which no
session row ever has, so such a token is always rejected by the gate.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

# Claim names written by SecurityService.login() and read back here.
CLAIM_USERNAME = "sub"
CLAIM_GIVEN_NAME = "name"
CLAIM_EMAIL = "email"
CLAIM_PHONE = "phone"
CLAIM_ROLE = "role"
CLAIM_SESSION_ID = "sid"

EMPTY_SESSION_ID = UUID(int=0)


def parse_session_id(value) -> UUID:
    """Return value as a UUID, or EMPTY_SESSION_ID if it is missing or malformed."""
    if not value:
        return EMPTY_SESSION_ID
    try:
        return UUID(str(value))
    except ValueError:
        return EMPTY_SESSION_ID


@dataclass(frozen=True)
class SessionContext:
    username: str
    given_name: str
    email: str
    phone: str
    role: str
    session_id: UUID

    @property
    def has_session(self) -> bool:
        return self.session_id != EMPTY_SESSION_ID

    @classmethod
    def from_claims(cls, claims: dict) -> SessionContext:
        return cls(
            username=str(claims.get(CLAIM_USERNAME, "")),
            given_name=str(claims.get(CLAIM_GIVEN_NAME, "")),
            email=str(claims.get(CLAIM_EMAIL, "")),
            phone=str(claims.get(CLAIM_PHONE, "")),
            role=str(claims.get(CLAIM_ROLE, "")),
            session_id=parse_session_id(claims.get(CLAIM_SESSION_ID)),
        )
