"""Tests for the SQLite layer: schema, transactions and read retries."""
from __future__ import annotations

import sqlite3

import pytest

from famgraph.errors import IntegrityError, InternalError
from famgraph.models import EdgeType, Profile, RelationshipEdge
from famgraph.storage import Database, ProfileRepository, RelationshipRepository


class TestSchema:
    def test_tables_created(self, db: Database):
        with db.transaction() as conn:
            names = {r["name"] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
        assert {
            "profiles",
            "relationships",
            "ancestor_cache",
            "connection_requests",
            "potential_duplicates",
            "merge_history",
            "content_items",
            "audit_log",
            "notifications",
        } <= names

    def test_reopen_is_idempotent(self, db: Database):
        again = Database(db.db_path)
        with again.transaction() as conn:
            n = conn.execute("SELECT COUNT(*) AS n FROM schema_version").fetchone()["n"]
        assert n == 1


class TestTransactions:
    def test_rollback_on_error(self, db: Database):
        profile = Profile(first_name="Ghost")
        with pytest.raises(RuntimeError):
            with db.transaction() as conn:
                ProfileRepository(conn).insert(profile)
                raise RuntimeError("boom")
        assert db.run_read(lambda conn: ProfileRepository(conn).get(profile.id)) is None

    def test_unique_edge_index_is_an_integrity_error(self, db: Database):
        a, b = Profile(first_name="A"), Profile(first_name="B")
        with db.transaction() as conn:
            repo = ProfileRepository(conn)
            repo.insert(a)
            repo.insert(b)
            RelationshipRepository(conn).insert(RelationshipEdge(person_a=a.id, person_b=b.id, type=EdgeType.SPOUSE))
        with pytest.raises(IntegrityError) as excinfo:
            with db.transaction() as conn:
                # reversed endpoints hit the same (type, low_id, high_id) key
                RelationshipRepository(conn).insert(
                    RelationshipEdge(person_a=b.id, person_b=a.id, type=EdgeType.SPOUSE)
                )
        assert excinfo.value.code == "integrity_error"
        assert excinfo.value.retryable is False
        edges = db.run_read(lambda conn: RelationshipRepository(conn).edges_of(a.id))
        assert len(edges) == 1

    def test_profile_round_trip(self, db: Database):
        p = Profile(first_name="Анна", last_name="Иванова", birth_date="1985-03-14", is_living=True)
        with db.transaction() as conn:
            ProfileRepository(conn).insert(p)
        loaded = db.run_read(lambda conn: ProfileRepository(conn).get(p.id))
        assert loaded is not None
        assert loaded.first_name == "Анна"
        assert loaded.birth_year == 1985
        assert loaded.is_living is True
        assert loaded.is_active is True


class TestReadRetries:
    def test_transient_lock_is_retried(self, env_tmp):
        db = Database(env_tmp / "retry.db", read_retries=3)
        calls = {"n": 0}

        def flaky(conn):
            calls["n"] += 1
            if calls["n"] < 3:
                raise sqlite3.OperationalError("database is locked")
            return "ok"

        assert db.run_read(flaky) == "ok"
        assert calls["n"] == 3

    def test_exhausted_retries_raise_internal_error(self, env_tmp):
        db = Database(env_tmp / "retry.db", read_retries=2)

        def locked(conn):
            raise sqlite3.OperationalError("database is locked")

        with pytest.raises(InternalError) as excinfo:
            db.run_read(locked)
        assert excinfo.value.retryable is True
