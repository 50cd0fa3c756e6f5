"""
Migrate the legacy JSON month archive into the SQLite store.

Each ``YYYY-MM.json`` document under the archive directory replaces the
matching month in the store (``replace_all``), so running the migration
twice leaves the same result.  Months that fail to parse or save are
reported and skipped; the others still migrate.

Usage:
    python scripts/import_json_archive.py
    python scripts/import_json_archive.py --archive data-json --db data/demands.db
    python scripts/import_json_archive.py --month 2025-03 --dry-run
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from demands.archive import MonthArchive  # noqa: E402
from demands.models import SaveMode  # noqa: E402
from demands.service import DemandService  # noqa: E402
from demands.store import RecordStore, StoreError  # noqa: E402
from utils.config import AppConfig  # noqa: E402

_logger = logging.getLogger("import_json_archive")


def migrate(archive: MonthArchive, service: DemandService,
            months: list[str] | None = None, dry_run: bool = False) -> dict[str, bool]:
    """Copy archive months into the store.

    Returns:
        ``{year_month: migrated}`` for every month attempted.
    """
    results: dict[str, bool] = {}
    for year_month in months or archive.list_months():
        try:
            document = archive.load(year_month)
        except ValueError as exc:
            _logger.error("Skipping month=%s: %s", year_month, exc)
            results[year_month] = False
            continue
        if document is None:
            _logger.warning("No archive file for month=%s", year_month)
            results[year_month] = False
            continue
        if dry_run:
            _logger.info("[dry-run] month=%s records=%d", year_month, len(document.records))
            results[year_month] = True
            continue
        results[year_month] = service.save(document.records, year_month, SaveMode.REPLACE_ALL)
    return results


def main(argv: list[str] | None = None) -> int:
    cfg = AppConfig.from_env()
    parser = argparse.ArgumentParser(
        description="Import legacy YYYY-MM.json month files into the demand store.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--archive", type=Path, default=cfg.archive_dir,
                        help="Directory of YYYY-MM.json files.")
    parser.add_argument("--db", type=Path, default=cfg.db_path,
                        help="Path to the SQLite database.")
    parser.add_argument("--backup-dir", type=Path, default=cfg.backup_dir,
                        help="Where a corrupt store is copied before it is rebuilt.")
    parser.add_argument("--month", action="append", default=None, metavar="YYYY-MM",
                        help="Only migrate this month (repeatable).")
    parser.add_argument("--dry-run", action="store_true",
                        help="Parse the archive and report, but write nothing.")
    args = parser.parse_args(argv)
    logging.basicConfig(format="%(asctime)s %(levelname)s %(message)s", level=logging.INFO)

    archive = MonthArchive(args.archive)
    try:
        with RecordStore(args.db, backup_dir=args.backup_dir,
                         config=cfg.database_config()) as store:
            results = migrate(archive, DemandService(store), args.month, args.dry_run)
    except StoreError as exc:
        _logger.error("Import aborted: %s", exc)
        return 1

    failed = sorted(m for m, ok in results.items() if not ok)
    _logger.info("Imported %d of %d month(s)%s", len(results) - len(failed), len(results),
                 f"; failed: {', '.join(failed)}" if failed else "")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
