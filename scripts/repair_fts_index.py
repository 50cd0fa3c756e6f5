"""
Rebuild the full-text index of the demand record store.

Drops the FTS5 mirror of ``description`` together with its sync triggers,
re-creates them with the unicode61 tokenizer and re-indexes every row.  Run
it after restoring a backup, after a VACUUM, or whenever description
search misses rows that a substring search finds.

A backup (see ``scripts/backup_db.py``) is taken first unless
``--no-backup`` is given.

Usage:
    python scripts/repair_fts_index.py
    python scripts/repair_fts_index.py --db /data/demands.db --no-backup
"""

import argparse
import logging
import sqlite3
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from demands.store import TABLE, RecordStore, StoreError  # noqa: E402
from scripts.backup_db import backup_database  # noqa: E402
from utils.config import AppConfig  # noqa: E402

_logger = logging.getLogger("repair_fts_index")


def repair(db_path: Path, backup_dir: Path | None = None) -> tuple[int, int]:
    """Back up (when *backup_dir* is given) and rebuild the FTS5 mirror.

    Returns:
        ``(rows in the record table, rows in the rebuilt index)``.
        The index count is 0 when this SQLite build lacks FTS5.

    Raises:
        FileNotFoundError: If *db_path* does not exist.
        StoreError: If the rebuild fails (the transaction is rolled back).
    """
    if not db_path.exists():
        raise FileNotFoundError(f"Database not found: {db_path}")
    if backup_dir is not None:
        backup_database(db_path, backup_dir)

    with RecordStore(db_path, backup_dir=backup_dir) as store:
        row = store.query_one(f"SELECT COUNT(*) AS n FROM {TABLE}")
        total = int(row["n"]) if row else 0
        indexed = store.rebuild_fts_index()
    _logger.info("FTS repair done records=%d indexed=%d", total, indexed)
    return total, indexed


def main(argv: list[str] | None = None) -> int:
    cfg = AppConfig.from_env()
    parser = argparse.ArgumentParser(
        description="Rebuild the description full-text index of the demand store.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--db", type=Path, default=cfg.db_path,
                        help="Path to the SQLite database.")
    parser.add_argument("--backup-dir", type=Path, default=cfg.backup_dir,
                        help="Directory for the pre-repair backup.")
    parser.add_argument("--no-backup", action="store_true",
                        help="Skip the pre-repair backup.")
    args = parser.parse_args(argv)
    logging.basicConfig(format="%(asctime)s %(levelname)s %(message)s", level=logging.INFO)

    try:
        total, indexed = repair(args.db, None if args.no_backup else args.backup_dir)
    except FileNotFoundError as exc:
        _logger.error("%s", exc)
        return 1
    except (StoreError, sqlite3.Error, OSError) as exc:
        _logger.error("FTS repair failed: %s", exc)
        return 1

    if indexed != total:
        _logger.warning("Index holds %d rows but the table has %d", indexed, total)
    return 0


if __name__ == "__main__":
    sys.exit(main())
