"""Connection handling, transactions and read retries."""
from __future__ import annotations

import sqlite3
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import TypeVar

import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from ..errors import IntegrityError, InternalError
from .schema import SCHEMA_SQL, SCHEMA_VERSION

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


class Database:
    """SQLite-backed store for profiles, edges and everything hanging off them.

    Every call opens its own connection, so a single ``Database`` can be
    shared across threads. Writes go through :meth:`transaction`, which takes
    the SQLite write lock up front (``BEGIN IMMEDIATE``).
    """

    def __init__(self, db_path: str | Path, *, busy_timeout_ms: int = 5000, read_retries: int = 3) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.busy_timeout_ms = busy_timeout_ms
        self.read_retries = max(1, read_retries)
        self._init_schema()

    @contextmanager
    def _get_conn(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path, isolation_level=None, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        # Enforce PRAGMAs per-connection
        conn.execute("PRAGMA foreign_keys=ON;")
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute(f"PRAGMA busy_timeout={int(self.busy_timeout_ms)};")
        try:
            yield conn
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._get_conn() as conn:
            # executescript() commits on its own, so it runs outside transaction()
            conn.executescript(SCHEMA_SQL)
        with self.transaction() as conn:
            row = conn.execute("SELECT version FROM schema_version ORDER BY version DESC LIMIT 1").fetchone()
            if row is None:
                conn.execute(
                    "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                    (SCHEMA_VERSION, now_iso()),
                )

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block atomically; any exception rolls everything back."""
        try:
            with self._get_conn() as conn:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    yield conn
                    conn.commit()
                except Exception:
                    conn.rollback()
                    raise
        except sqlite3.IntegrityError as exc:
            # a concurrent writer won the race on a unique or foreign key
            logger.warning("store.constraint_violated", error=str(exc))
            raise IntegrityError(f"constraint violated: {exc}") from exc
        except sqlite3.OperationalError as exc:
            logger.error("store.write_failed", error=str(exc))
            raise InternalError(f"backing store failure: {exc}") from exc

    def run_read(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        """Run ``fn`` on a fresh connection, retrying transient lock errors."""

        @retry(
            reraise=True,
            stop=stop_after_attempt(self.read_retries),
            wait=wait_exponential_jitter(initial=0.05, max=1.0),
            retry=retry_if_exception_type(sqlite3.OperationalError),
        )
        def _do() -> T:
            with self._get_conn() as conn:
                return fn(conn)

        try:
            return _do()
        except sqlite3.OperationalError as exc:
            logger.error("store.read_failed", error=str(exc), attempts=self.read_retries)
            raise InternalError(f"backing store failure: {exc}") from exc
