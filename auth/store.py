"""
auth/store.py -- SQLAlchemy Core persistence layer for users.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper.
Service and route code never touches SQL directly.

Contract consumed by AuthService:
  find_by_email(email) -> User | None
  find_by_id(user_id)  -> User | None
  insert(email, name, password_digest, role) -> User   (DuplicateEmail on conflict)

Concurrency:
  insert() is a single INSERT statement. UNIQUE(email) decides the winner when
  two registrations for the same address race -- there is no read-before-write
  anywhere in this module. The loser gets IntegrityError, mapped to
  DuplicateEmail.

  Every other database failure (locked file, dropped connection, missing
  table) is mapped to StorageUnavailable so the service never mistakes an
  outage for a conflict or a bad password.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Emails are normalized (strip + lower) on write and on every lookup.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, MetaData, String, Table, Text, create_engine, event, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from auth.errors import DuplicateEmail, StorageUnavailable
from auth.models import Role, User

logger = logging.getLogger("credgate.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_ROLE_VALUES = ", ".join(f"'{r.value}'" for r in Role)

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    Column("password_digest", Text, nullable=False),
    Column("role", String(20), nullable=False),
    Column("created_at", String(32), nullable=False),
    CheckConstraint(f"role IN ({_ROLE_VALUES})", name="ck_users_role"),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    WAL lets readers (logins) proceed while a registration is writing. Set per
    connection because SQLite PRAGMAs are not inherited by new pool members.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_email(email: str) -> str:
    """Canonical form used for storage and lookup."""
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore("sqlite:///credgate_auth.db")
        user = store.insert("ana@example.com", "Ana", hasher.hash("pw"), Role.supplier)
        store.find_by_email("ANA@example.com")   # same record
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        engine_kwargs: dict = {}
        in_memory = ":memory:" in db_url or "mode=memory" in db_url
        if db_url.startswith("sqlite"):
            # Pool connections are shared across FastAPI worker threads.
            # timeout: wait on a concurrent writer instead of failing immediately.
            connect_args["check_same_thread"] = False
            connect_args["timeout"] = 30
            if in_memory:
                # An in-memory DB lives only as long as its connection; every
                # thread must see the same one.
                engine_kwargs["poolclass"] = StaticPool
        self.engine: Engine = create_engine(db_url, connect_args=connect_args, **engine_kwargs)
        if db_url.startswith("sqlite") and not in_memory:
            event.listen(self.engine, "connect", _set_wal_mode)
        try:
            _metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StorageUnavailable(detail=str(exc)) from exc

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_email(self, email: str) -> User | None:
        """Look up a user by normalized email. Returns None if not found."""
        return self._fetch_one(_users.c.email == normalize_email(email))

    def find_by_id(self, user_id: str) -> User | None:
        """Look up a user by id. Returns None if not found."""
        return self._fetch_one(_users.c.id == user_id)

    def list_users(self) -> list[User]:
        """Return all users ordered by email. Administrator-only operation."""
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(select(_users).order_by(_users.c.email)).fetchall()
        except SQLAlchemyError as exc:
            raise StorageUnavailable(detail=type(exc).__name__) from exc
        return [_row_to_user(r) for r in rows]

    def ping(self) -> bool:
        """Return True if the users table can be read. Used by /health."""
        try:
            with self.engine.connect() as conn:
                conn.execute(select(_users.c.id).limit(1))
        except SQLAlchemyError:
            logger.warning("Database ping failed", exc_info=True)
            return False
        return True

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, email: str, name: str, password_digest: str, role: Role) -> User:
        """Insert a new user and return it with its generated id.

        Raises DuplicateEmail if the normalized email is already present --
        including when a concurrent insert committed first. Raises
        StorageUnavailable for any other database failure.
        """
        user = User(
            id=str(uuid.uuid4()),
            email=normalize_email(email),
            name=name,
            role=Role(role),
            password_digest=password_digest,
            created_at=_now_iso(),
        )
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _users.insert().values(
                        id=user.id,
                        email=user.email,
                        name=user.name,
                        password_digest=user.password_digest,
                        role=user.role.value,
                        created_at=user.created_at,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateEmail() from exc
        except SQLAlchemyError as exc:
            logger.error("User insert failed: %s", type(exc).__name__)
            raise StorageUnavailable(detail=type(exc).__name__) from exc
        return user

    def close(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fetch_one(self, clause) -> User | None:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(select(_users).where(clause)).fetchone()
        except SQLAlchemyError as exc:
            logger.error("User lookup failed: %s", type(exc).__name__)
            raise StorageUnavailable(detail=type(exc).__name__) from exc
        return _row_to_user(row) if row is not None else None


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name,
        role=Role(row.role),
        password_digest=row.password_digest,
        created_at=row.created_at,
    )
