"""Unit tests for auth/store.py -- the user directory.

Covers:
- insert() generates ids and normalizes email
- find_by_email() / find_by_id() hits and misses
- UNIQUE(email) -> DuplicateEmail, case-insensitively
- CHECK(role) rejects roles outside the closed set at the SQL level
- concurrent inserts of one email: exactly one winner (file-backed SQLite)
- database failures surface as StorageUnavailable; ping() fails without the users table
- in-memory URLs share one connection (StaticPool)
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import StaticPool

from auth.errors import DuplicateEmail, StorageUnavailable
from auth.models import Role, User
from auth.store import UserStore


class TestInsertAndLookup:
    def test_insert_returns_user_with_generated_id(self, store: UserStore) -> None:
        user = store.insert("ana@example.com", "Ana", "digest", Role.supplier)
        assert len(user.id) == 36
        assert user.email == "ana@example.com"
        assert user.role is Role.supplier
        assert user.created_at

    def test_ids_are_unique(self, store: UserStore) -> None:
        ids = {store.insert(f"u{i}@example.com", "U", "d", Role.ceo).id for i in range(20)}
        assert len(ids) == 20

    def test_email_normalized(self, store: UserStore) -> None:
        user = store.insert("  Ana@Example.COM ", "Ana", "d", Role.ceo)
        assert user.email == "ana@example.com"
        assert store.find_by_email("ANA@example.com").id == user.id

    def test_find_by_id(self, store: UserStore) -> None:
        user = store.insert("ana@example.com", "Ana", "d", Role.administrator)
        found = store.find_by_id(user.id)
        assert found == user

    def test_misses_return_none(self, store: UserStore) -> None:
        assert store.find_by_email("nobody@example.com") is None
        assert store.find_by_id("00000000-0000-0000-0000-000000000000") is None

    def test_list_users_ordered_by_email(self, store: UserStore) -> None:
        store.insert("zed@example.com", "Zed", "d", Role.ceo)
        store.insert("amy@example.com", "Amy", "d", Role.supplier)
        assert [u.email for u in store.list_users()] == ["amy@example.com", "zed@example.com"]

    def test_digest_not_in_repr(self, store: UserStore) -> None:
        user = store.insert("ana@example.com", "Ana", "$2b$04$secretdigest", Role.ceo)
        assert "secretdigest" not in repr(user)
        assert isinstance(user, User)

    def test_ping(self, store: UserStore) -> None:
        assert store.ping() is True


class TestConstraints:
    def test_duplicate_email(self, store: UserStore) -> None:
        store.insert("ana@example.com", "Ana", "d", Role.supplier)
        with pytest.raises(DuplicateEmail):
            store.insert("ana@example.com", "Other Ana", "d2", Role.administrator)

    def test_duplicate_email_differs_only_in_case(self, store: UserStore) -> None:
        store.insert("ana@example.com", "Ana", "d", Role.supplier)
        with pytest.raises(DuplicateEmail):
            store.insert("ANA@EXAMPLE.COM", "Ana", "d", Role.supplier)

    def test_role_check_constraint(self, store: UserStore) -> None:
        """A role outside the closed set is refused by the database itself."""
        with store.engine.connect() as conn:
            with pytest.raises(IntegrityError):
                conn.execute(
                    text(
                        "INSERT INTO users (id, email, name, password_digest, role, created_at) "
                        "VALUES ('x', 'x@example.com', 'X', 'd', 'janitor', '2026-01-01')"
                    )
                )

    def test_invalid_role_rejected_before_sql(self, store: UserStore) -> None:
        with pytest.raises(ValueError):
            store.insert("x@example.com", "X", "d", "janitor")  # type: ignore[arg-type]


class TestConcurrentInsert:
    def test_one_winner_per_email(self, tmp_path) -> None:
        """Racing inserts of one email: exactly one succeeds, the rest get DuplicateEmail."""
        s = UserStore(f"sqlite:///{tmp_path / 'race.db'}")
        workers = 8
        barrier = threading.Barrier(workers)

        def attempt(i: int):
            barrier.wait()
            try:
                return s.insert("race@example.com", f"Racer {i}", "d", Role.supplier)
            except DuplicateEmail as exc:
                return exc

        try:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                results = list(pool.map(attempt, range(workers)))
            winners = [r for r in results if isinstance(r, User)]
            losers = [r for r in results if isinstance(r, DuplicateEmail)]
            assert len(winners) == 1
            assert len(losers) == workers - 1
            assert s.find_by_email("race@example.com").id == winners[0].id
        finally:
            s.close()


class TestStorageFailure:
    def test_lookup_on_broken_database(self, store: UserStore) -> None:
        with store.engine.connect() as conn:
            conn.execute(text("DROP TABLE users"))
            conn.commit()
        with pytest.raises(StorageUnavailable):
            store.find_by_email("ana@example.com")
        with pytest.raises(StorageUnavailable):
            store.insert("ana@example.com", "Ana", "d", Role.ceo)

    def test_ping_fails_when_users_table_missing(self, store: UserStore) -> None:
        with store.engine.connect() as conn:
            conn.execute(text("DROP TABLE users"))
            conn.commit()
        assert store.ping() is False


class TestEngineConfig:
    def test_memory_database_uses_static_pool(self, store: UserStore) -> None:
        assert isinstance(store.engine.pool, StaticPool)

    def test_shared_memory_uri_uses_static_pool(self) -> None:
        s = UserStore("sqlite:///file:test_credgate_pool?mode=memory&cache=shared&uri=true")
        try:
            assert isinstance(s.engine.pool, StaticPool)
            s.insert("pool@example.com", "Pool", "d", Role.ceo)
            assert s.find_by_email("pool@example.com") is not None
        finally:
            s.close()

    def test_file_database_keeps_default_pool(self, tmp_path) -> None:
        s = UserStore(f"sqlite:///{tmp_path / 'pool.db'}")
        try:
            assert not isinstance(s.engine.pool, StaticPool)
        finally:
            s.close()
