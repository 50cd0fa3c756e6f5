"""
Demand Records Search Tool

List, search and export the demand record store from the command line.

Usage:
    python search_demands.py --months
    python search_demands.py --month 2025-03
    python search_demands.py --search 报表 --by description
    python search_demands.py --search REQ-031 --by id --top 50
    python search_demands.py --month 2025-03 --export-csv march.csv
    python search_demands.py --export-csv all_demands.csv
"""

import argparse
import logging
import sys
import textwrap
from pathlib import Path

from demands.export import iter_csv
from demands.models import DemandRecord, is_valid_year_month
from demands.service import DemandService
from demands.store import RecordStore, StoreError
from utils.config import AppConfig
from utils.formatting import format_count, format_timestamp, truncate_text


# ── Display ───────────────────────────────────────────────────────────────────

def show_months(service: DemandService) -> None:
    """Print every month with its record count, newest first."""
    counts = service.months.month_counts()
    print("=" * 40)
    print("  MONTHS WITH RECORDS")
    print("=" * 40)
    if not counts:
        print("\n  The store is empty.")
        return
    print(f"\n  {'Month':<12} {'Records':>10}")
    print(f"  {'-'*12} {'-'*10}")
    for month, n in counts:
        print(f"  {month:<12} {format_count(n):>10}")
    print(f"\n  Total: {format_count(sum(n for _, n in counts))}")


def display_records(records: list[DemandRecord], title: str) -> None:
    if not records:
        print(f"\n  No records for: {title}")
        return
    print(f"\n{'='*90}")
    print(f"  {title} ({len(records)} shown)")
    print(f"{'='*90}")
    print(f"  {'Created':<20} {'Demand ID':<20} Description")
    print(f"  {'-'*20} {'-'*20} {'-'*46}")
    for r in records:
        print(f"  {format_timestamp(r.created_at):<20} "
              f"{truncate_text(r.demand_id, 20):<20} {truncate_text(r.description, 46)}")


def export_csv(records: list[DemandRecord], out: Path) -> None:
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w", newline="", encoding="utf-8") as f:
        for line in iter_csv(records):
            f.write(line)
    print(f"\n  Exported {len(records)} record(s) to {out}")


# ── CLI ───────────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    cfg = AppConfig.from_env()
    parser = argparse.ArgumentParser(
        description="Search the demand record store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""
            Examples:
              python search_demands.py --months
              python search_demands.py --month 2025-03
              python search_demands.py --search 报表 --by description
              python search_demands.py --month 2025-03 --export-csv march.csv
        """),
    )
    parser.add_argument("--db", type=Path, default=cfg.db_path,
                        help=f"Database path (default: {cfg.db_path})")
    parser.add_argument("--backup-dir", type=Path, default=cfg.backup_dir,
                        help="Where a corrupt store is copied before it is rebuilt")
    parser.add_argument("--months", action="store_true",
                        help="List months with record counts")
    parser.add_argument("--month", default=None, metavar="YYYY-MM",
                        help="Show the records of one month")
    parser.add_argument("--search", default=None, metavar="TERM",
                        help="Search term")
    parser.add_argument("--by", choices=["id", "description"], default="id",
                        help="Field to search (default: id)")
    parser.add_argument("--top", type=int, default=cfg.search_default_limit,
                        help=f"Number of search results (default: {cfg.search_default_limit})")
    parser.add_argument("--offset", type=int, default=0,
                        help="Skip this many search results")
    parser.add_argument("--export-csv", type=Path, default=None, metavar="PATH",
                        help="Write the month (or every record) to a CSV file")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.WARNING,
                        format="%(asctime)s %(levelname)s %(name)s %(message)s")

    if not (args.months or args.month or args.search or args.export_csv):
        parser.print_help()
        return 1

    try:
        store_config = AppConfig.from_env().database_config()
        with RecordStore(args.db, backup_dir=args.backup_dir, config=store_config) as store:
            service = DemandService(store)
            return _run(service, args)
    except StoreError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1


def _run(service: DemandService, args: argparse.Namespace) -> int:
    if args.months:
        show_months(service)

    if args.month:
        if not is_valid_year_month(args.month):
            print(f"ERROR: Invalid month '{args.month}'. Expected YYYY-MM.", file=sys.stderr)
            return 1
        records = service.get_by_month(args.month)
        display_records(records, args.month)
        if args.export_csv:
            export_csv(records, args.export_csv)
    elif args.export_csv:
        export_csv(service.get_all(), args.export_csv)

    if args.search:
        result = service.search_engine.search(args.search, args.by, args.top, args.offset)
        if result.error:
            print(f"ERROR: search failed: {result.error}", file=sys.stderr)
            return 1
        display_records(result.records, f"{args.by} matching '{args.search}'")
        print(f"\n  {len(result.records)} of {format_count(result.total)} match(es)"
              + ("; more available with --offset" if result.has_more else ""))
    return 0


if __name__ == "__main__":
    sys.exit(main())
