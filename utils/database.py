"""SQLite helpers shared by the record store and the maintenance scripts.

Provides reusable functions for:
- Connection pragmas
- Table / FTS5 capability introspection
- Creating, dropping and rebuilding an external-content FTS5 mirror
"""

import sqlite3

from utils.config import DatabaseConfig


def init_pragmas(conn: sqlite3.Connection, cfg: DatabaseConfig | None = None) -> None:
    """Initialize SQLite performance and reliability pragmas.

    - WAL mode so readers are not blocked by the single writer
    - NORMAL synchronous mode for speed without losing committed data
    - busy_timeout so a briefly locked file waits instead of failing

    Args:
        conn: SQLite connection to configure
        cfg: Pragma settings (defaults to ``DatabaseConfig()``)
    """
    cfg = cfg or DatabaseConfig()
    if cfg.wal_mode:
        # In-memory databases report "memory" and ignore the request
        conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(f"PRAGMA synchronous={cfg.synchronous}")
    conn.execute(f"PRAGMA busy_timeout={int(cfg.busy_timeout_ms)}")
    conn.execute("PRAGMA foreign_keys=ON")


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    """Check if a table (including a virtual table) exists in the database."""
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
        (table,)
    )
    return cursor.fetchone() is not None


def fts5_available(conn: sqlite3.Connection) -> bool:
    """Return True if this SQLite build can create FTS5 virtual tables.

    Checks the compile options first and falls back to creating a throwaway
    table in the temp schema, since some builds load FTS5 without listing it.
    """
    try:
        row = conn.execute(
            "SELECT COUNT(*) FROM pragma_compile_options "
            "WHERE compile_options = 'ENABLE_FTS5'"
        ).fetchone()
        if row and row[0]:
            return True
    except sqlite3.Error:
        pass
    try:
        conn.execute("CREATE VIRTUAL TABLE temp._fts5_probe USING fts5(x)")
        conn.execute("DROP TABLE temp._fts5_probe")
        return True
    except sqlite3.Error:
        return False


def create_fts5_mirror(conn: sqlite3.Connection, table: str, fts_table: str,
                       column: str, tokenize: str = "unicode61") -> None:
    """Create an external-content FTS5 table over *column* of *table*.

    The mirror is keyed on the source table's rowid and kept in sync by three
    triggers named ``{table}_ai``, ``{table}_ad`` and ``{table}_au``.  Safe to
    call repeatedly.

    Args:
        conn: SQLite connection
        table: Source table name
        fts_table: FTS5 table name
        column: Indexed text column
        tokenize: FTS5 tokenizer spec
    """
    conn.execute(f"""
        CREATE VIRTUAL TABLE IF NOT EXISTS {fts_table} USING fts5(
            {column},
            content='{table}',
            content_rowid='rowid',
            tokenize='{tokenize}'
        )
    """)

    conn.execute(f"""
        CREATE TRIGGER IF NOT EXISTS {table}_ai AFTER INSERT ON {table} BEGIN
            INSERT INTO {fts_table}(rowid, {column}) VALUES (new.rowid, new.{column});
        END
    """)

    conn.execute(f"""
        CREATE TRIGGER IF NOT EXISTS {table}_ad AFTER DELETE ON {table} BEGIN
            INSERT INTO {fts_table}({fts_table}, rowid, {column})
            VALUES('delete', old.rowid, old.{column});
        END
    """)

    conn.execute(f"""
        CREATE TRIGGER IF NOT EXISTS {table}_au AFTER UPDATE ON {table} BEGIN
            INSERT INTO {fts_table}({fts_table}, rowid, {column})
            VALUES('delete', old.rowid, old.{column});
            INSERT INTO {fts_table}(rowid, {column}) VALUES (new.rowid, new.{column});
        END
    """)


def drop_fts5_mirror(conn: sqlite3.Connection, table: str, fts_table: str) -> None:
    """Drop the FTS5 mirror table and its sync triggers."""
    for suffix in ("ai", "ad", "au"):
        conn.execute(f"DROP TRIGGER IF EXISTS {table}_{suffix}")
    conn.execute(f"DROP TABLE IF EXISTS {fts_table}")


def rebuild_fts5_mirror(conn: sqlite3.Connection, fts_table: str) -> int:
    """Re-index every row of the content table into *fts_table*.

    Returns:
        Number of rows in the mirror after the rebuild
    """
    conn.execute(f"INSERT INTO {fts_table}({fts_table}) VALUES('rebuild')")
    row = conn.execute(f"SELECT COUNT(*) FROM {fts_table}").fetchone()
    return row[0] if row else 0

