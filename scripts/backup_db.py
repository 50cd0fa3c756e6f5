"""
Snapshot the demand store to a timestamped file, optionally pruning old ones.

The copy goes through ``sqlite3.Connection.backup`` so it is consistent
even while the API is writing and includes pages still in the WAL.  A
snapshot that fails ``PRAGMA integrity_check`` is deleted and reported.

    python scripts/backup_db.py
    python scripts/backup_db.py --db /data/demands.db --dest /backups --keep 7

Snapshots are named ``<stem>_YYYYMMDD_HHMMSS<suffix>``.  Corruption-recovery
copies (``<stem>_corrupt_...``) use a different shape and are left alone by
``--keep``.
"""

import argparse
import logging
import re
import sqlite3
import sys
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from utils.config import AppConfig  # noqa: E402

_logger = logging.getLogger("backup_db")

_STAMP = "%Y%m%d_%H%M%S"


def backup_pattern(src: Path) -> re.Pattern:
    """Names of snapshots taken from *src*."""
    return re.compile(rf"^{re.escape(src.stem)}_[0-9]{{8}}_[0-9]{{6}}{re.escape(src.suffix)}\Z")


def _snapshot_path(src: Path, dest_dir: Path) -> Path:
    return dest_dir / f"{src.stem}_{datetime.now().strftime(_STAMP)}{src.suffix}"


def backup_database(src: Path, dest_dir: Path) -> Path:
    """Copy *src* into *dest_dir* and verify the copy.

    Raises:
        FileNotFoundError: *src* is missing.
        sqlite3.DatabaseError: the copy is not intact (it has been removed).
    """
    if not src.exists():
        raise FileNotFoundError(f"Source database not found: {src}")
    dest_dir.mkdir(parents=True, exist_ok=True)
    target = _snapshot_path(src, dest_dir)
    _logger.info("backup start src=%s target=%s", src, target)

    source = sqlite3.connect(str(src))
    copy = sqlite3.connect(str(target))
    try:
        source.backup(copy, pages=100)
        (verdict,) = copy.execute("PRAGMA integrity_check").fetchone()
    finally:
        copy.close()
        source.close()

    if verdict != "ok":
        target.unlink(missing_ok=True)
        raise sqlite3.DatabaseError(f"Snapshot of {src} is not intact: {verdict}")
    _logger.info("backup done target=%s bytes=%d", target, target.stat().st_size)
    return target


def prune_old_backups(dest_dir: Path, keep: int, src: Path) -> list[Path]:
    """Delete all but the newest *keep* snapshots of *src*; return what went."""
    if keep < 1:
        raise ValueError(f"keep must be at least 1, got {keep}")
    pattern = backup_pattern(src)
    # the timestamp is fixed width, so name order is age order
    snapshots = sorted(p for p in dest_dir.iterdir() if pattern.match(p.name))
    stale = snapshots[:-keep]
    for path in stale:
        path.unlink()
    if stale:
        _logger.info("pruned=%s kept=%d", [p.name for p in stale], len(snapshots) - len(stale))
    return stale


def _keep_count(text: str) -> int:
    value = int(text)
    if value < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or more, got {value}")
    return value


def main(argv: list[str] | None = None) -> int:
    cfg = AppConfig.from_env()
    parser = argparse.ArgumentParser(description="Snapshot the demand store.")
    parser.add_argument("--db", type=Path, default=cfg.db_path,
                        help=f"store to copy (default: {cfg.db_path})")
    parser.add_argument("--dest", type=Path, default=cfg.backup_dir,
                        help=f"snapshot directory (default: {cfg.backup_dir})")
    parser.add_argument("--keep", type=_keep_count, default=0, metavar="N",
                        help="keep only the newest N snapshots; 0 keeps all")
    args = parser.parse_args(argv)
    logging.basicConfig(format="%(asctime)s %(levelname)s %(message)s", level=logging.INFO)

    try:
        snapshot = backup_database(args.db, args.dest)
        if args.keep:
            prune_old_backups(args.dest, args.keep, args.db)
    except FileNotFoundError as exc:
        _logger.error("%s", exc)
        return 1
    except (OSError, sqlite3.Error) as exc:
        _logger.error("backup failed: %s", exc)
        return 1
    print(snapshot)
    return 0


if __name__ == "__main__":
    sys.exit(main())
