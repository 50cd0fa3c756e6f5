"""
Search engine for demand records.

Two lookups, selected by field:

- ``search_by_demand_id``: substring match on ``demand_id`` (LIKE, so
  ASCII case-insensitive, same as SQLite's default text comparison).
- ``search_by_description``: FTS5 MATCH against the mirror index when the
  store has one, otherwise substring match.  When the full-text query runs
  but matches nothing the same page is re-run as a substring match: the
  unicode61 tokenizer treats a run of CJK characters as one token, so a
  term like "报表" never matches "月度报表导出" through FTS alone.

Both return ``SearchResult(records, total, has_more)`` ordered newest first.
``total`` comes from a separate COUNT over the same predicate.  Any query
failure yields an empty page with ``error`` set, never an exception.
"""

import logging
from typing import Any

from demands.models import SELECT_COLUMNS, DemandRecord, SearchResult
from demands.store import FTS_TABLE, TABLE, RecordStore, StoreError
from utils.query import NEWEST_FIRST, build_contains_clause
from utils.strings import normalize_whitespace, sanitize_fts5_query

logger = logging.getLogger(__name__)

SEARCH_TYPES = ("id", "description")

_FTS_SUBQUERY = (
    f"SELECT rowid FROM {FTS_TABLE} WHERE {FTS_TABLE} MATCH ?"
)


class SearchEngine:
    """Paginated lookups over a ``RecordStore``."""

    def __init__(self, store: RecordStore, default_limit: int = 20,
                 max_limit: int = 100) -> None:
        self.store = store
        self.default_limit = default_limit
        self.max_limit = max_limit

    # ── public API ────────────────────────────────────────────────────────

    def search(self, term: str, field: str = "id", limit: int | None = None,
               offset: int = 0) -> SearchResult:
        """Dispatch on *field*: ``"id"`` or ``"description"``.

        Raises:
            ValueError: If *field* is not a search field.
        """
        if field == "id":
            return self.search_by_demand_id(term, limit, offset)
        if field == "description":
            return self.search_by_description(term, limit, offset)
        raise ValueError(
            f"Invalid search type: '{field}'. Must be one of: {', '.join(SEARCH_TYPES)}"
        )

    def search_by_demand_id(self, term: str, limit: int | None = None,
                            offset: int = 0) -> SearchResult:
        term = (term or "").strip()
        limit, offset = self._page_bounds(limit, offset)
        if not term:
            logger.warning("Empty demand id search term rejected")
            return SearchResult()
        try:
            result = self._substring("demand_id", term, limit, offset)
        except StoreError as exc:
            return self._failed("id", term, exc)
        logger.info("search by=id term=%r total=%d returned=%d offset=%d",
                    term, result.total, len(result.records), offset)
        return result

    def search_by_description(self, term: str, limit: int | None = None,
                              offset: int = 0) -> SearchResult:
        term = normalize_whitespace(term or "")
        limit, offset = self._page_bounds(limit, offset)
        if not term:
            logger.warning("Empty description search term rejected")
            return SearchResult()
        try:
            result = None
            if self.store.fts_enabled:
                result = self._full_text(term, limit, offset)
            if result is None:
                result = self._substring("description", term, limit, offset)
        except StoreError as exc:
            return self._failed("description", term, exc)
        logger.info("search by=description term=%r total=%d returned=%d offset=%d",
                    term, result.total, len(result.records), offset)
        return result

    # ── strategies ────────────────────────────────────────────────────────

    def _full_text(self, term: str, limit: int, offset: int) -> SearchResult | None:
        """FTS5 page, or None when the substring path should answer instead."""
        fts_query = sanitize_fts5_query(term)
        if not fts_query:
            return None

        total = self._count(
            f"SELECT COUNT(*) AS n FROM {TABLE} r "
            f"JOIN ({_FTS_SUBQUERY}) f ON r.rowid = f.rowid",
            [fts_query],
        )
        if total == 0:
            logger.debug("FTS matched nothing for %r; retrying as substring", term)
            return None

        columns = ", ".join(f"r.{c}" for c in SELECT_COLUMNS.split(", "))
        rows = self._rows(
            f"SELECT {columns} FROM {TABLE} r "
            f"JOIN ({_FTS_SUBQUERY}) f ON r.rowid = f.rowid "
            "ORDER BY r.created_at DESC, r.rowid DESC LIMIT ? OFFSET ?",
            [fts_query, limit, offset],
        )
        return SearchResult.page([DemandRecord.from_row(r) for r in rows], total, offset)

    def _substring(self, column: str, term: str, limit: int, offset: int) -> SearchResult:
        where, params = build_contains_clause(column, term)
        total = self._count(f"SELECT COUNT(*) AS n FROM {TABLE} WHERE {where}", params)
        rows = self._rows(
            f"SELECT {SELECT_COLUMNS} FROM {TABLE} WHERE {where} "
            f"{NEWEST_FIRST} LIMIT ? OFFSET ?",
            params + [limit, offset],
        )
        return SearchResult.page([DemandRecord.from_row(r) for r in rows], total, offset)

    # ── helpers ───────────────────────────────────────────────────────────

    def _count(self, sql: str, params: list[Any]) -> int:
        result = self.store.try_query_one(sql, params)
        if not result.ok:
            raise result.error
        return int(result.value["n"]) if result.value else 0

    def _rows(self, sql: str, params: list[Any]) -> list[dict[str, Any]]:
        result = self.store.try_query(sql, params)
        if not result.ok:
            raise result.error
        return result.value

    def _page_bounds(self, limit: int | None, offset: int | None) -> tuple[int, int]:
        if limit is None:
            limit = self.default_limit
        limit = max(1, min(int(limit), self.max_limit))
        offset = max(0, int(offset or 0))
        return limit, offset

    @staticmethod
    def _failed(field: str, term: str, exc: StoreError) -> SearchResult:
        logger.error("search failed by=%s term=%r error=%s", field, term, exc)
        return SearchResult.failed(str(exc))
