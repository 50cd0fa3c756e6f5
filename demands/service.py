"""
Demand service: the CRUD surface used by the HTTP routes and the CLI.

Every mutation is a delete/insert pair inside one store transaction; rows
are never updated in place.  ``save`` turns any failure into ``False``
after logging it, because callers treat the boolean as the only success
signal.  Reads validate their month argument first and degrade to an
empty list on storage errors, except corruption, which propagates once.

Known limitation: ``check_duplicate_demand_ids`` and ``save`` are separate
calls and nothing serializes two writers against each other, so two
concurrent incremental saves can both pass the duplicate check.
"""

import logging
from collections import defaultdict
from typing import Iterable, Sequence

from demands.models import (
    SELECT_COLUMNS,
    DemandRecord,
    DuplicateDemand,
    SaveMode,
    is_valid_year_month,
)
from demands.months import MonthIndex
from demands.search import SearchEngine
from demands.store import TABLE, RecordStore, SaveVerificationError, StoreError
from utils.query import NEWEST_FIRST, build_in_clause, chunked

logger = logging.getLogger(__name__)

# demandIds are stripped on save; rows stored earlier may still carry padding
_TRIMMED_DEMAND_ID = "TRIM(demand_id, ' ' || char(9) || char(10) || char(13))"

_INSERT_SQL = (
    f"INSERT INTO {TABLE} (id, demand_id, description, created_at, year_month) "
    "VALUES (:id, :demand_id, :description, :created_at, :year_month)"
)


class DemandService:
    """CRUD operations over one ``RecordStore``."""

    def __init__(self, store: RecordStore, search_engine: SearchEngine | None = None) -> None:
        self.store = store
        self.months = MonthIndex(store)
        self.search_engine = search_engine or SearchEngine(store)

    @property
    def batch_size(self) -> int:
        return self.store.config.batch_size

    # ── reads ─────────────────────────────────────────────────────────────

    def list_available_months(self) -> list[str]:
        return self.months.list_available_months()

    def get_by_month(self, year_month: str) -> list[DemandRecord]:
        """All records in *year_month*, newest first; [] on a bad month."""
        if not is_valid_year_month(year_month):
            logger.warning("get_by_month rejected invalid month=%r", year_month)
            return []
        result = self.store.try_query(
            f"SELECT {SELECT_COLUMNS} FROM {TABLE} WHERE year_month = ? {NEWEST_FIRST}",
            (year_month,),
        )
        records = [DemandRecord.from_row(r) for r in result.value]
        logger.info("get_by_month month=%s count=%d ok=%s",
                    year_month, len(records), result.ok)
        return records

    def get_all(self) -> list[DemandRecord]:
        """Every record, any month, newest first."""
        rows = self.store.query(f"SELECT {SELECT_COLUMNS} FROM {TABLE} {NEWEST_FIRST}")
        return [DemandRecord.from_row(r) for r in rows]

    def count_month(self, year_month: str) -> int:
        row = self.store.query_one(
            f"SELECT COUNT(*) AS n FROM {TABLE} WHERE year_month = ?", (year_month,)
        )
        return int(row["n"]) if row else 0

    # ── search passthrough ────────────────────────────────────────────────

    def search_by_demand_id(self, term: str, limit: int | None = None, offset: int = 0):
        return self.search_engine.search_by_demand_id(term, limit, offset)

    def search_by_description(self, term: str, limit: int | None = None, offset: int = 0):
        return self.search_engine.search_by_description(term, limit, offset)

    # ── duplicate pre-flight ──────────────────────────────────────────────

    def check_duplicate_demand_ids(self, candidates: Sequence[DemandRecord],
                                   year_month: str) -> list[DuplicateDemand]:
        """Candidates whose demandId is already used by another stored record
        in *year_month*.  Blank demandIds are never duplicates.

        Advisory only: a concurrent save can still collide after this check.
        """
        if not is_valid_year_month(year_month):
            logger.warning("check_duplicate_demand_ids rejected invalid month=%r", year_month)
            return []

        wanted = sorted({c.demand_id.strip() for c in candidates if c.demand_id.strip()})
        if not wanted:
            return []

        owners: dict[str, set[str]] = defaultdict(set)
        for batch in chunked(wanted, self.batch_size):
            in_clause, params = build_in_clause(_TRIMMED_DEMAND_ID, batch)
            result = self.store.try_query(
                f"SELECT id, {_TRIMMED_DEMAND_ID} AS demand_id FROM {TABLE} "
                f"WHERE year_month = ? AND {in_clause}",
                [year_month] + params,
            )
            if not result.ok:
                logger.error("Duplicate check failed month=%s error=%s",
                             year_month, result.error)
                return []
            for row in result.value:
                owners[row["demand_id"]].add(row["id"])

        duplicates = []
        for candidate in candidates:
            key = candidate.demand_id.strip()
            if key and owners.get(key, set()) - {candidate.id}:
                duplicates.append(DuplicateDemand(key, candidate.description))
        if duplicates:
            logger.info("Duplicate demand ids month=%s ids=%s",
                        year_month, [d.demand_id for d in duplicates])
        return duplicates

    # ── writes ────────────────────────────────────────────────────────────

    def save(self, records: Sequence[DemandRecord], year_month: str,
             mode: SaveMode | str = SaveMode.REPLACE_ALL) -> bool:
        """Persist *records* into *year_month*.

        ``replace_all`` deletes the month and inserts *records* (empty clears
        the month), then verifies the month count.  ``upsert_selected``
        deletes only rows whose id is being re-saved, then inserts.

        Returns:
            True on commit, False on validation failure or rollback.
        """
        try:
            mode = SaveMode(mode)
        except ValueError:
            logger.warning("save rejected invalid mode=%r", mode)
            return False
        if not is_valid_year_month(year_month):
            logger.warning("save rejected invalid month=%r mode=%s", year_month, mode.value)
            return False
        problem = self._validate_records(records)
        if problem:
            logger.warning("save rejected month=%s mode=%s: %s", year_month, mode.value, problem)
            return False

        rows = [r.to_row(year_month) for r in records]
        logger.info("save start month=%s mode=%s records=%d",
                    year_month, mode.value, len(rows))
        try:
            if mode is SaveMode.REPLACE_ALL:
                self.store.transaction(lambda s: self._replace_month(s, rows, year_month))
            else:
                self.store.transaction(lambda s: self._upsert(s, rows))
        except StoreError as exc:
            logger.error("save failed and rolled back month=%s mode=%s error=%s",
                         year_month, mode.value, exc)
            return False
        except Exception:
            logger.exception("save failed and rolled back month=%s mode=%s",
                             year_month, mode.value)
            return False
        logger.info("save committed month=%s mode=%s records=%d",
                    year_month, mode.value, len(rows))
        return True

    def _replace_month(self, store: RecordStore, rows: list[dict], year_month: str) -> None:
        deleted = store.execute(f"DELETE FROM {TABLE} WHERE year_month = ?", (year_month,))
        logger.debug("replace month=%s deleted=%d", year_month, deleted)
        store.execute_many(_INSERT_SQL, rows)
        stored = store.query_one(
            f"SELECT COUNT(*) AS n FROM {TABLE} WHERE year_month = ?", (year_month,)
        )
        count = int(stored["n"]) if stored else 0
        if count != len(rows):
            raise SaveVerificationError(
                f"month {year_month} holds {count} rows after saving {len(rows)}"
            )

    def _upsert(self, store: RecordStore, rows: list[dict]) -> None:
        ids = [r["id"] for r in rows]
        stale = 0
        for batch in chunked(ids, self.batch_size):
            in_clause, params = build_in_clause("id", batch)
            stale += store.execute(f"DELETE FROM {TABLE} WHERE {in_clause}", params)
        logger.debug("upsert replaced=%d inserted=%d", stale, len(rows))
        store.execute_many(_INSERT_SQL, rows)

    def delete_by_ids(self, ids: Iterable[str]) -> int:
        """Delete records by id in one transaction; returns rows removed,
        or 0 if the transaction rolled back."""
        ids = sorted({i for i in ids if i})
        if not ids:
            return 0

        def _delete(store: RecordStore) -> int:
            removed = 0
            for batch in chunked(ids, self.batch_size):
                in_clause, params = build_in_clause("id", batch)
                removed += store.execute(f"DELETE FROM {TABLE} WHERE {in_clause}", params)
            return removed

        try:
            removed = self.store.transaction(_delete)
        except StoreError as exc:
            logger.error("delete failed ids=%d error=%s", len(ids), exc)
            return 0
        logger.info("deleted records requested=%d removed=%d", len(ids), removed)
        return removed

    def import_records(self, records: Sequence[DemandRecord]) -> dict[str, bool]:
        """Group *records* by creation month and upsert each month.

        Returns:
            ``{year_month: saved}`` for every month touched.
        """
        by_month: dict[str, list[DemandRecord]] = defaultdict(list)
        for record in records:
            by_month[record.year_month].append(record)

        results = {}
        for year_month in sorted(by_month, reverse=True):
            results[year_month] = self.save(
                by_month[year_month], year_month, SaveMode.UPSERT_SELECTED
            )
        logger.info("import months=%d records=%d failed=%s",
                    len(results), len(records),
                    [m for m, ok in results.items() if not ok])
        return results

    # ── validation ────────────────────────────────────────────────────────

    @staticmethod
    def _validate_records(records: Sequence[DemandRecord]) -> str | None:
        seen: set[str] = set()
        for index, record in enumerate(records):
            if not record.id or not str(record.id).strip():
                return f"record {index} has no id"
            if record.created_at is None:
                return f"record {record.id} has no createdAt"
            if record.id in seen:
                return f"record id {record.id} appears twice"
            seen.add(record.id)
        return None
