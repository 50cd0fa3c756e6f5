"""Month index: the distinct ``YYYY-MM`` buckets that currently hold records.

Derived from the store on every call; nothing is materialized.
Zero-padded fixed-width keys make lexicographic DESC the same as
newest-first.
"""

import logging

from demands.store import TABLE, RecordStore

logger = logging.getLogger(__name__)


class MonthIndex:
    """Read-only view over the month buckets of a ``RecordStore``."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def list_available_months(self) -> list[str]:
        """Distinct months with at least one record, newest first."""
        rows = self.store.query(
            f"SELECT DISTINCT year_month FROM {TABLE} ORDER BY year_month DESC"
        )
        return [r["year_month"] for r in rows]

    def month_counts(self) -> list[tuple[str, int]]:
        """``(year_month, record_count)`` pairs, newest first."""
        rows = self.store.query(
            f"SELECT year_month, COUNT(*) AS n FROM {TABLE} "
            "GROUP BY year_month ORDER BY year_month DESC"
        )
        return [(r["year_month"], r["n"]) for r in rows]
