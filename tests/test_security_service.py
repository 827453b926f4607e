"""Unit tests for auth/security.py, auth/identity.py and auth/tokens.py.

Covers:
- registration validation order and messages
- password policy errors are numbered "n. Code-Description" lines
- registration assigns the fixed role and creates it on first use
- login: blank fields, generic failure message, session row + claims on success
- logout: closes the session once, is idempotent and always succeeds
- is_session_valid for unknown, active and logged-out sessions
- get_user_by_id
- token verification rejects wrong audience, wrong issuer and expired tokens
"""

from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

from jose import jwt

from auth.identity import password_errors
from auth.models import ROLE_ADMIN, ROLE_USER, Registration
from auth.security import LOGIN_FAILED_MESSAGE
from auth.session import EMPTY_SESSION_ID, SessionContext
from auth.tokens import create_access_token, decode_access_token
from core.config import get_settings
from core.results import ErrorKind

GOOD = Registration(username="alice", password="Str0ng!pw", email="alice@example.com", phone_number="555-0199")


def _reg(**overrides) -> Registration:
    fields = {
        "username": GOOD.username,
        "password": GOOD.password,
        "email": GOOD.email,
        "phone_number": GOOD.phone_number,
    }
    fields.update(overrides)
    return Registration(**fields)


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class TestRegister:
    def test_blank_fields_have_distinct_messages(self, security):
        cases = {
            "username": "Please specify a valid username",
            "password": "Please specify a valid password",
            "email": "Please specify a valid email address",
            "phone_number": "Please specify a valid phone number",
        }
        for field, message in cases.items():
            result = security.register_user(_reg(**{field: "  "}))
            assert result.error.kind is ErrorKind.BAD_REQUEST
            assert result.error.message == message

    def test_success_assigns_role(self, security, user_store):
        result = security.register_admin(GOOD)
        assert result.ok
        assert result.value.message == "System user created successfully"
        assert result.value.user.username == "alice"
        assert result.value.user.role_name == ROLE_ADMIN
        assert user_store.role_exists(ROLE_ADMIN)
        assert user_store.get_roles(result.value.user.id) == [ROLE_ADMIN]

    def test_password_is_stored_hashed(self, security, user_store):
        security.register_user(GOOD)
        stored = user_store.get_by_username("alice")
        assert stored.hashed_password != GOOD.password
        assert stored.hashed_password.startswith("$2")

    def test_duplicate_username(self, security):
        assert security.register_user(GOOD).ok
        result = security.register_admin(_reg(email="other@example.com"))
        assert result.error.kind is ErrorKind.BAD_REQUEST
        assert result.error.message == "A system user already exists with username = 'alice'"

    def test_weak_password_lists_every_violation(self, security):
        result = security.register_user(_reg(password="abc"))
        assert result.error.kind is ErrorKind.BAD_REQUEST
        lines = result.error.message.split("\n")
        assert lines[0].startswith("1. PasswordTooShort-")
        codes = [line.split(". ", 1)[1].split("-", 1)[0] for line in lines]
        assert codes == [
            "PasswordTooShort",
            "PasswordRequiresDigit",
            "PasswordRequiresUpper",
            "PasswordRequiresNonAlphanumeric",
        ]

    def test_invalid_email(self, security):
        result = security.register_user(_reg(email="not-an-email"))
        assert result.error.message.startswith("1. InvalidEmail-")

    def test_policy_accepts_strong_password(self):
        assert password_errors("Str0ng!pw") == []


# ---------------------------------------------------------------------------
# Login / logout / session validity
# ---------------------------------------------------------------------------


class TestLogin:
    def test_blank_username_and_password(self, security):
        assert security.login("", "x").error.message == "Please specify a valid username"
        assert security.login("alice", "").error.message == "Please specify a valid password"

    def test_unknown_user_and_wrong_password_share_message(self, security):
        security.register_user(GOOD)
        unknown = security.login("nobody", "Str0ng!pw")
        wrong = security.login("alice", "Wr0ng!pw")
        assert unknown.error.kind is ErrorKind.UNAUTHORIZED
        assert wrong.error.kind is ErrorKind.UNAUTHORIZED
        assert unknown.error.message == wrong.error.message == LOGIN_FAILED_MESSAGE

    def test_success_opens_session_and_signs_claims(self, security):
        security.register_admin(GOOD)
        result = security.login("alice", GOOD.password)
        assert result.ok
        login = result.value
        assert login.user.role_name == ROLE_ADMIN

        claims = decode_access_token(login.token)
        assert claims is not None
        session = SessionContext.from_claims(claims)
        assert session.username == "alice"
        assert session.given_name == "alice"
        assert session.email == GOOD.email
        assert session.phone == GOOD.phone_number
        assert session.role == ROLE_ADMIN
        assert security.is_session_valid(session.session_id)

    def test_expiry_defaults_to_configured_lifetime(self, security):
        security.register_user(GOOD)
        login = security.login("alice", GOOD.password).value
        expires_at = datetime.fromisoformat(login.expires_at)
        lifetime = expires_at - datetime.now(timezone.utc)
        expected = timedelta(seconds=get_settings().token_expire_seconds)
        assert expected - timedelta(minutes=1) < lifetime <= expected

    def test_role_defaults_to_user(self, security, user_store):
        """An account without any role assignment logs in as User."""
        security.register_user(GOOD)
        user = user_store.get_by_username("alice")
        with user_store.engine.connect() as conn:
            conn.exec_driver_sql("DELETE FROM user_roles")
            conn.commit()
        assert user_store.get_roles(user.id) == []
        assert security.login("alice", GOOD.password).value.user.role_name == ROLE_USER

    def test_each_login_opens_its_own_session(self, security):
        security.register_user(GOOD)
        first = SessionContext.from_claims(decode_access_token(security.login("alice", GOOD.password).value.token))
        second = SessionContext.from_claims(decode_access_token(security.login("alice", GOOD.password).value.token))
        assert first.session_id != second.session_id


class TestLogout:
    def test_logout_closes_session_once(self, security, user_store):
        security.register_user(GOOD)
        sid = SessionContext.from_claims(
            decode_access_token(security.login("alice", GOOD.password).value.token)
        ).session_id

        assert security.logout(sid).ok
        assert security.is_session_valid(sid) is False
        first_logout = user_store.get_session(sid).logout_date
        assert first_logout is not None

        # Second logout succeeds and keeps the original timestamp.
        assert security.logout(sid).ok
        assert user_store.get_session(sid).logout_date == first_logout

    def test_logout_unknown_session_succeeds(self, security):
        assert security.logout(uuid4()).ok
        assert security.logout(EMPTY_SESSION_ID).ok

    def test_is_session_valid_for_unknown_and_empty(self, security):
        assert security.is_session_valid(uuid4()) is False
        assert security.is_session_valid(EMPTY_SESSION_ID) is False


# ---------------------------------------------------------------------------
# User lookup
# ---------------------------------------------------------------------------


class TestGetUserById:
    def test_found(self, security):
        created = security.register_admin(GOOD).value.user
        result = security.get_user_by_id(created.id)
        assert result.ok
        assert result.value.username == "alice"
        assert result.value.role_name == ROLE_ADMIN

    def test_zero_id(self, security):
        zero = UUID(int=0)
        result = security.get_user_by_id(zero)
        assert result.error.kind is ErrorKind.BAD_REQUEST
        assert result.error.message == f"The user-id specified is not valid (id = '{zero}')"

    def test_missing(self, security):
        uid = uuid4()
        result = security.get_user_by_id(uid)
        assert result.error.kind is ErrorKind.NOT_FOUND
        assert result.error.message == f"No system user with id = '{uid}' has been found"


# ---------------------------------------------------------------------------
# Token verification
# ---------------------------------------------------------------------------


class TestTokens:
    def _forge(self, **overrides) -> str:
        settings = get_settings()
        payload = {
            "sub": "mallory",
            "iss": settings.jwt_issuer,
            "aud": settings.jwt_audience,
            "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
        }
        payload.update(overrides)
        return jwt.encode(payload, settings.secret_key, algorithm="HS256")

    def test_round_trip(self):
        token, _ = create_access_token({"sub": "bob", "role": ROLE_USER})
        claims = decode_access_token(token)
        assert claims["sub"] == "bob"
        assert claims["role"] == ROLE_USER

    def test_wrong_audience(self):
        assert decode_access_token(self._forge(aud="someone-else")) is None

    def test_wrong_issuer(self):
        assert decode_access_token(self._forge(iss="someone-else")) is None

    def test_expired(self):
        assert decode_access_token(self._forge(exp=datetime.now(timezone.utc) - timedelta(minutes=1))) is None

    def test_wrong_key(self):
        token = jwt.encode({"sub": "x"}, "k" * 40, algorithm="HS256")
        assert decode_access_token(token) is None

    def test_missing_subject(self):
        assert decode_access_token(self._forge(sub="")) is None

    def test_garbage(self):
        assert decode_access_token("not.a.jwt") is None


class TestSessionContext:
    def test_missing_session_id_is_sentinel(self):
        assert SessionContext.from_claims({"sub": "x"}).session_id == EMPTY_SESSION_ID

    def test_malformed_session_id_is_sentinel(self):
        session = SessionContext.from_claims({"sub": "x", "sid": "not-a-guid"})
        assert session.session_id == EMPTY_SESSION_ID
        assert session.has_session is False
