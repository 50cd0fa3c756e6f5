"""
Record store: the single SQLite handle behind every demand operation.

Owns the connection lifecycle, guarantees the schema (and the optional FTS5
mirror of ``description``) exists, exposes query/execute/transaction
primitives, and recovers from a corrupted database file.

Failure policy:
  - Reads and writes outside a transaction log the error and degrade to an
    empty result / 0.  ``try_*`` variants return a ``StoreResult`` so a
    caller can tell "no rows" from "failed".
  - Inside ``transaction()`` every error propagates so the transaction
    rolls back.
  - Corruption (malformed image, not a database) copies the files to the
    backup directory, deletes them, re-creates an empty schema and raises
    ``StoreCorruptedError`` for the operation that hit it.  Later calls run
    against the fresh store.

Usage::

    with RecordStore(Path("data/demands.db"), backup_dir=Path("data/backups")) as store:
        rows = store.query("SELECT * FROM demand_records WHERE year_month = ?", ("2025-03",))
"""

from __future__ import annotations

import logging
import shutil
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Generic, Iterable, Iterator, Sequence, TypeVar

from utils.config import DatabaseConfig
from utils.database import (
    create_fts5_mirror,
    drop_fts5_mirror,
    fts5_available,
    init_pragmas,
    rebuild_fts5_mirror,
)
from utils.patterns import CORRUPTION_MESSAGE

logger = logging.getLogger(__name__)

T = TypeVar("T")

TABLE = "demand_records"
FTS_TABLE = "demand_records_fts"

_SCHEMA_SQL = f"""
    CREATE TABLE IF NOT EXISTS {TABLE} (
        id          TEXT PRIMARY KEY,
        demand_id   TEXT,
        description TEXT,
        created_at  TEXT NOT NULL,
        year_month  TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS idx_{TABLE}_year_month ON {TABLE}(year_month);
    CREATE INDEX IF NOT EXISTS idx_{TABLE}_demand_id ON {TABLE}(demand_id);
"""

# SQLITE_CORRUPT, SQLITE_NOTADB (primary result codes)
_CORRUPTION_CODES = {11, 26}

_SIDE_FILE_SUFFIXES = ("-wal", "-shm", "-journal")


# ── Errors and results ────────────────────────────────────────────────────────

class StoreError(Exception):
    """A storage operation failed."""


class StoreCorruptedError(StoreError):
    """The database file was corrupt; it was backed up and replaced."""

    def __init__(self, message: str, backup_path: Path | None = None):
        super().__init__(message)
        self.backup_path = backup_path


class SaveVerificationError(StoreError):
    """Row count after a save did not match what was written."""


@dataclass
class StoreResult(Generic[T]):
    """Value of a store call plus the error that produced it, if any."""

    value: T
    error: StoreError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def is_corruption_error(exc: BaseException) -> bool:
    """True if *exc* says the database file itself is unusable."""
    if not isinstance(exc, sqlite3.DatabaseError):
        return False
    code = getattr(exc, "sqlite_errorcode", None)
    if code is not None and (code & 0xFF) in _CORRUPTION_CODES:
        return True
    return bool(CORRUPTION_MESSAGE.search(str(exc)))


# ── Store ─────────────────────────────────────────────────────────────────────

class RecordStore:
    """Single-connection SQLite store for demand records.

    One handle is shared by every caller; a re-entrant lock serializes
    access so FastAPI's threadpool workers never interleave statements or
    transactions on it.
    """

    def __init__(
        self,
        db_path: Path | str,
        backup_dir: Path | str | None = None,
        config: DatabaseConfig | None = None,
    ) -> None:
        self.db_path = Path(db_path) if str(db_path) != ":memory:" else None
        self.backup_dir = Path(backup_dir) if backup_dir else None
        self.config = config or DatabaseConfig()

        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._tx_depth = 0
        self._fts_enabled: bool | None = None

    # ── lifecycle ─────────────────────────────────────────────────────────

    def open(self) -> "RecordStore":
        """Open the connection and bootstrap the schema (idempotent).

        Raises:
            StoreCorruptedError: The existing file was corrupt and has been
                replaced by an empty store.
        """
        with self._lock:
            if self._conn is None:
                try:
                    self._conn = self._connect()
                except sqlite3.Error as exc:
                    if is_corruption_error(exc):
                        raise self._recover(exc, "open") from exc
                    raise StoreError(f"Cannot open store at {self.location}: {exc}") from exc
        return self

    def close(self) -> None:
        """Close the connection; the next operation reopens it."""
        with self._lock:
            self._discard_connection()

    def __enter__(self) -> "RecordStore":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def location(self) -> str:
        return str(self.db_path) if self.db_path else ":memory:"

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def fts_enabled(self) -> bool:
        """Whether the FTS5 mirror exists (checked once per bootstrap)."""
        if self._fts_enabled is None:
            self.open()
        return bool(self._fts_enabled)

    def _connect(self) -> sqlite3.Connection:
        if self.db_path is not None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(
            self.location,
            check_same_thread=False,
            timeout=self.config.busy_timeout_ms / 1000,
            isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        try:
            init_pragmas(conn, self.config)
            self._bootstrap(conn)
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    def _bootstrap(self, conn: sqlite3.Connection) -> None:
        conn.executescript(_SCHEMA_SQL)
        self._fts_enabled = fts5_available(conn)
        if self._fts_enabled:
            create_fts5_mirror(conn, TABLE, FTS_TABLE, "description")
        else:
            logger.warning(
                "FTS5 unavailable in this SQLite build; description search "
                "will use substring matching (store=%s)", self.location,
            )
        logger.debug("Schema ready store=%s fts=%s", self.location, self._fts_enabled)

    def _discard_connection(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            except sqlite3.Error:
                logger.warning("Error closing store connection", exc_info=True)
            self._conn = None
        self._tx_depth = 0

    # ── corruption recovery ───────────────────────────────────────────────

    def _backup_files(self) -> Path | None:
        """Copy the database and its side files into ``backup_dir``."""
        if self.db_path is None or not self.db_path.exists():
            return None
        dest_dir = self.backup_dir or self.db_path.parent / "backups"
        dest_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        backup_path = dest_dir / f"{self.db_path.stem}_corrupt_{timestamp}{self.db_path.suffix}"
        shutil.copy2(self.db_path, backup_path)
        for suffix in _SIDE_FILE_SUFFIXES:
            side = Path(f"{self.db_path}{suffix}")
            if side.exists():
                shutil.copy2(side, Path(f"{backup_path}{suffix}"))
        return backup_path

    def _delete_files(self) -> None:
        if self.db_path is None:
            return
        self.db_path.unlink(missing_ok=True)
        for suffix in _SIDE_FILE_SUFFIXES:
            Path(f"{self.db_path}{suffix}").unlink(missing_ok=True)

    def _recover(self, exc: BaseException, operation: str) -> StoreCorruptedError:
        """Back up, delete and re-create the store; return the error to raise."""
        logger.error(
            "Corrupted store detected op=%s store=%s error=%s",
            operation, self.location, exc,
        )
        backup_path = None
        try:
            backup_path = self._backup_files()
        except OSError:
            logger.error("Backup of corrupted store failed store=%s",
                         self.location, exc_info=True)
        self._discard_connection()
        try:
            self._delete_files()
            self._conn = self._connect()
        except (OSError, sqlite3.Error) as reinit_exc:
            logger.error("Re-initializing store failed store=%s",
                         self.location, exc_info=True)
            return StoreCorruptedError(
                f"Store at {self.location} is corrupt and could not be "
                f"re-initialized: {reinit_exc}",
                backup_path,
            )
        logger.error(
            "Store re-initialized empty store=%s backup=%s",
            self.location, backup_path,
        )
        return StoreCorruptedError(
            f"Store at {self.location} was corrupt ({exc}); "
            f"backed up to {backup_path} and re-initialized",
            backup_path,
        )

    # ── core dispatch ─────────────────────────────────────────────────────

    def _run(self, operation: str, fn: Callable[[sqlite3.Connection], T]) -> T:
        """Run *fn* on the connection, translating sqlite errors.

        Raises:
            StoreCorruptedError: after recovery, if the file was corrupt.
            StoreError: any other sqlite failure.
        """
        with self._lock:
            self.open()
            try:
                return fn(self._conn)
            except sqlite3.Error as exc:
                if is_corruption_error(exc):
                    raise self._recover(exc, operation) from exc
                raise StoreError(f"{operation} failed: {exc}") from exc

    def _degrade(self, operation: str, sql: str, fn: Callable[[sqlite3.Connection], T],
                 empty: T) -> StoreResult[T]:
        with self._lock:
            try:
                return StoreResult(self._run(operation, fn))
            except StoreCorruptedError:
                raise
            except StoreError as exc:
                if self._tx_depth:
                    raise
                error = exc
            logger.warning("Store %s failed sql=%r error=%s",
                           operation, " ".join(sql.split()), error.__cause__ or error)
            return StoreResult(empty, error)

    # ── primitives ────────────────────────────────────────────────────────

    def try_query(self, sql: str, params: Sequence[Any] = ()) -> StoreResult[list[dict[str, Any]]]:
        """Run a read; rows as dicts in result order."""
        return self._degrade(
            "query", sql,
            lambda conn: [dict(r) for r in conn.execute(sql, tuple(params)).fetchall()],
            [],
        )

    def query(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        return self.try_query(sql, params).value

    def try_query_one(self, sql: str, params: Sequence[Any] = ()) -> StoreResult[dict[str, Any] | None]:
        def _one(conn: sqlite3.Connection) -> dict[str, Any] | None:
            row = conn.execute(sql, tuple(params)).fetchone()
            return dict(row) if row is not None else None
        return self._degrade("query_one", sql, _one, None)

    def query_one(self, sql: str, params: Sequence[Any] = ()) -> dict[str, Any] | None:
        return self.try_query_one(sql, params).value

    def try_execute(self, sql: str, params: Sequence[Any] = ()) -> StoreResult[int]:
        """Run a write; value is the affected row count."""
        return self._degrade(
            "execute", sql,
            lambda conn: conn.execute(sql, tuple(params)).rowcount,
            0,
        )

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        return self.try_execute(sql, params).value

    def execute_many(self, sql: str, rows: Iterable[Sequence[Any] | dict[str, Any]]) -> int:
        """Run *sql* once per row; same failure policy as ``execute``."""
        rows = list(rows)
        if not rows:
            return 0
        return self._degrade(
            "execute_many", sql,
            lambda conn: conn.executemany(sql, rows).rowcount,
            0,
        ).value

    # ── transactions ──────────────────────────────────────────────────────

    @contextmanager
    def atomic(self) -> Iterator["RecordStore"]:
        """Context manager form of ``transaction``.

        Nested use joins the outer transaction.  Any exception rolls the
        outermost transaction back and propagates.
        """
        with self._lock:
            if self._tx_depth:
                self._tx_depth += 1
                try:
                    yield self
                finally:
                    self._tx_depth -= 1
                return

            self._run("begin", lambda conn: conn.execute("BEGIN IMMEDIATE"))
            conn = self._conn
            self._tx_depth = 1
            try:
                yield self
            except BaseException:
                self._tx_depth = 0
                # Recovery may already have replaced the connection
                if conn is self._conn and conn is not None and conn.in_transaction:
                    try:
                        conn.execute("ROLLBACK")
                    except sqlite3.Error:
                        logger.error("Rollback failed store=%s", self.location, exc_info=True)
                raise
            self._tx_depth = 0
            try:
                self._run("commit", lambda c: c.execute("COMMIT"))
            except StoreError:
                if self._conn is not None and self._conn.in_transaction:
                    self._conn.execute("ROLLBACK")
                raise

    def transaction(self, fn: Callable[["RecordStore"], T]) -> T:
        """Run ``fn(store)`` atomically; commit only if it returns normally."""
        with self.atomic():
            return fn(self)

    @property
    def in_transaction(self) -> bool:
        return self._tx_depth > 0

    # ── maintenance ───────────────────────────────────────────────────────

    def rebuild_fts_index(self) -> int:
        """Drop and re-create the FTS5 mirror, then re-index every row.

        Returns:
            Number of indexed rows (0 when FTS5 is unavailable).
        """
        if not self.fts_enabled:
            logger.warning("FTS5 unavailable; nothing to rebuild store=%s", self.location)
            return 0

        def _rebuild(store: "RecordStore") -> int:
            def _do(conn: sqlite3.Connection) -> int:
                drop_fts5_mirror(conn, TABLE, FTS_TABLE)
                create_fts5_mirror(conn, TABLE, FTS_TABLE, "description")
                return rebuild_fts5_mirror(conn, FTS_TABLE)
            return store._run("rebuild_fts", _do)

        count = self.transaction(_rebuild)
        logger.info("FTS index rebuilt rows=%d store=%s", count, self.location)
        return count
