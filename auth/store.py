"""
auth/store.py -- SQLAlchemy Core persistence layer for identity and session entities.

Pattern: Repository + Data Mapper (same as office/store.py).
UserStore is the repository; _row_to_user / _row_to_session are the mappers.
Services and dependencies never touch SQL directly.

Tables:
  users         one row per SystemUser, username UNIQUE
  roles         role names ("Admin", "User")
  user_roles    user -> role assignments; the autoincrement id preserves
                assignment order so "first assigned role" is well defined
  user_session  one row per login; logout_date NULL while the session is active

Security:
  All queries use bound parameters. No f-strings in SQL.

  end_session() only updates rows whose logout_date IS NULL, which makes
  logout idempotent and keeps the first logout timestamp terminal.

Layer rule: no imports from api/ or office/.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, UniqueConstraint, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from auth.models import SystemUser, UserSession
from core.config import get_settings
from core.db import create_store_engine, with_retries

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("email", String(255), nullable=False),
    Column("phone_number", String(50), nullable=False),
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)

_roles = Table(
    "roles",
    _metadata,
    Column("name", String(50), primary_key=True),
)

_user_roles = Table(
    "user_roles",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String(36), nullable=False, index=True),
    Column("role_name", String(50), nullable=False),
    UniqueConstraint("user_id", "role_name", name="uq_user_role"),
)

_sessions = Table(
    "user_session",
    _metadata,
    Column("session_id", String(36), primary_key=True),
    Column("date_created", String(32), nullable=False),
    Column("logout_date", String(32)),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for SystemUser, role and UserSession records.

    Usage:
        store = UserStore()
        store.create_user(SystemUser(id=uuid4(), username="alice", ...))
        store.add_to_role(user.id, "Admin")
        store.close()
    """

    def __init__(self, db_url: str = "") -> None:
        self.engine: Engine = create_store_engine(db_url or get_settings().database_url)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @with_retries
    def create_user(self, user: SystemUser) -> None:
        """Insert a new user.

        Raises sqlalchemy.exc.IntegrityError if the username or id already exists.
        """
        with self.engine.connect() as conn:
            conn.execute(
                _users.insert().values(
                    id=str(user.id),
                    username=user.username,
                    email=user.email,
                    phone_number=user.phone_number,
                    hashed_password=user.hashed_password,
                    created_at=user.created_at or _now_iso(),
                )
            )
            conn.commit()

    @with_retries
    def get_by_username(self, username: str) -> Optional[SystemUser]:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    @with_retries
    def get_by_id(self, user_id: UUID) -> Optional[SystemUser]:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == str(user_id))).fetchone()
        return _row_to_user(row) if row is not None else None

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    @with_retries
    def role_exists(self, name: str) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(_roles.select().where(_roles.c.name == name)).fetchone()
        return row is not None

    @with_retries
    def create_role(self, name: str) -> None:
        """Insert a role. Raises IntegrityError if it already exists."""
        with self.engine.connect() as conn:
            conn.execute(_roles.insert().values(name=name))
            conn.commit()

    @with_retries
    def add_to_role(self, user_id: UUID, role_name: str) -> None:
        """Assign a role to a user. Raises IntegrityError if already assigned."""
        with self.engine.connect() as conn:
            conn.execute(_user_roles.insert().values(user_id=str(user_id), role_name=role_name))
            conn.commit()

    @with_retries
    def get_roles(self, user_id: UUID) -> list[str]:
        """Return the user's role names in assignment order."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _user_roles.select().where(_user_roles.c.user_id == str(user_id)).order_by(_user_roles.c.id)
            ).fetchall()
        return [r.role_name for r in rows]

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    @with_retries
    def create_session(self, session: UserSession) -> None:
        with self.engine.connect() as conn:
            conn.execute(
                _sessions.insert().values(
                    session_id=str(session.session_id),
                    date_created=session.date_created or _now_iso(),
                    logout_date=session.logout_date,
                )
            )
            conn.commit()

    @with_retries
    def get_session(self, session_id: UUID) -> Optional[UserSession]:
        with self.engine.connect() as conn:
            row = conn.execute(_sessions.select().where(_sessions.c.session_id == str(session_id))).fetchone()
        return _row_to_session(row) if row is not None else None

    @with_retries
    def end_session(self, session_id: UUID, logout_date: str = "") -> bool:
        """Stamp logout_date on an active session.

        Returns True if an active session was closed, False if the session does
        not exist or was already logged out.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _sessions.update()
                .where((_sessions.c.session_id == str(session_id)) & (_sessions.c.logout_date.is_(None)))
                .values(logout_date=logout_date or _now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            return False

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> SystemUser:
    return SystemUser(
        id=UUID(row.id),
        username=row.username,
        email=row.email,
        phone_number=row.phone_number,
        hashed_password=row.hashed_password,
        created_at=row.created_at,
    )


def _row_to_session(row) -> UserSession:
    return UserSession(
        session_id=UUID(row.session_id),
        date_created=row.date_created,
        logout_date=row.logout_date,
    )
