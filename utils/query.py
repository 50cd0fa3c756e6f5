"""Shared SQL fragment builders for the record store, search and service.

Column names passed here come from module-level allow-lists, never from
user input; values always travel as ``?`` parameters.
"""

from typing import Any, Iterable, Iterator, Sequence

from utils.strings import contains_pattern

# Stable newest-first ordering; rowid breaks ties between equal timestamps
# so OFFSET pagination never repeats or skips a row.
NEWEST_FIRST = "ORDER BY created_at DESC, rowid DESC"

SEARCHABLE_COLUMNS = {"demand_id", "description"}


def build_contains_clause(column: str, term: str, alias: str = "") -> tuple[str, list[Any]]:
    """Build a case-insensitive (ASCII) substring predicate on *column*.

    Args:
        column: One of SEARCHABLE_COLUMNS.
        term: Raw search term; LIKE wildcards in it match literally.
        alias: Optional table alias prefix, e.g. "r".

    Returns:
        Tuple of (condition, params).

    Raises:
        ValueError: If *column* is not searchable.
    """
    if column not in SEARCHABLE_COLUMNS:
        raise ValueError(
            f"Invalid search column: '{column}'. "
            f"Must be one of: {', '.join(sorted(SEARCHABLE_COLUMNS))}"
        )
    qualified = f"{alias}.{column}" if alias else column
    return f"{qualified} LIKE ? ESCAPE '\\'", [contains_pattern(term)]


def build_in_clause(column: str, values: Sequence[Any]) -> tuple[str, list[Any]]:
    """Build ``column IN (?, ?, ...)``; an empty *values* matches nothing."""
    if not values:
        return "1=0", []
    placeholders = ",".join("?" * len(values))
    return f"{column} IN ({placeholders})", list(values)


def chunked(values: Iterable[Any], size: int) -> Iterator[list[Any]]:
    """Yield lists of at most *size* items (keeps IN() under SQLite's
    bound-parameter limit)."""
    batch: list[Any] = []
    for value in values:
        batch.append(value)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch
