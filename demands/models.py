"""Domain types for demand records and the row/wire mappings around them.

Storage rows use snake_case columns, the JSON wire format (HTTP API and the
legacy month archive) uses camelCase keys.  Both mappings are declared
once here rather than derived from attribute names at runtime.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

from utils.patterns import YEAR_MONTH


# ── Field mappings ────────────────────────────────────────────────────────────

# attribute -> storage column
ROW_COLUMNS: dict[str, str] = {
    "id": "id",
    "demand_id": "demand_id",
    "description": "description",
    "created_at": "created_at",
}

# attribute -> JSON key
WIRE_KEYS: dict[str, str] = {
    "id": "id",
    "demand_id": "demandId",
    "description": "description",
    "created_at": "createdAt",
}

SELECT_COLUMNS = ", ".join(ROW_COLUMNS.values())


# ── Timestamps and month buckets ──────────────────────────────────────────────

def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 string (``Z`` suffix allowed) or datetime into an
    aware UTC datetime.  Naive values are taken to be UTC.

    Raises:
        ValueError: If *value* is empty or not a recognizable timestamp.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Invalid timestamp: {value!r}")
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def serialize_timestamp(value: datetime) -> str:
    """Serialize to a fixed-width UTC ISO string so text order is time order."""
    return parse_timestamp(value).isoformat(timespec="milliseconds")


def month_of(value: Any) -> str:
    """Return the ``YYYY-MM`` bucket of a timestamp (UTC)."""
    dt = parse_timestamp(value)
    return f"{dt.year:04d}-{dt.month:02d}"


def is_valid_year_month(value: Any) -> bool:
    """True if *value* is a ``YYYY-MM`` string with a month of 01-12."""
    if not isinstance(value, str) or not YEAR_MONTH.match(value):
        return False
    return 1 <= int(value[5:7]) <= 12


# ── Records ───────────────────────────────────────────────────────────────────

@dataclass
class DemandRecord:
    """One row of the demand table."""

    id: str
    demand_id: str = ""
    description: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        self.created_at = parse_timestamp(self.created_at)
        self.demand_id = (self.demand_id or "").strip()
        self.description = self.description or ""

    @property
    def year_month(self) -> str:
        """Creation month bucket of this record."""
        return month_of(self.created_at)

    def to_row(self, year_month: str) -> dict[str, Any]:
        """Storage row for this record placed in bucket *year_month*."""
        return {
            ROW_COLUMNS["id"]: self.id,
            ROW_COLUMNS["demand_id"]: self.demand_id,
            ROW_COLUMNS["description"]: self.description,
            ROW_COLUMNS["created_at"]: serialize_timestamp(self.created_at),
            "year_month": year_month,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any] | sqlite3.Row) -> "DemandRecord":
        return cls(
            id=row[ROW_COLUMNS["id"]],
            demand_id=row[ROW_COLUMNS["demand_id"]] or "",
            description=row[ROW_COLUMNS["description"]] or "",
            created_at=row[ROW_COLUMNS["created_at"]],
        )

    def to_wire(self) -> dict[str, Any]:
        """camelCase JSON-ready dict (timestamps as ISO strings)."""
        return {
            WIRE_KEYS["id"]: self.id,
            WIRE_KEYS["demand_id"]: self.demand_id,
            WIRE_KEYS["description"]: self.description,
            WIRE_KEYS["created_at"]: serialize_timestamp(self.created_at),
        }

    @classmethod
    def from_wire(cls, data: Mapping[str, Any]) -> "DemandRecord":
        """Build from a camelCase dict.

        Raises:
            KeyError: If ``id`` or ``createdAt`` is missing.
            ValueError: If ``createdAt`` cannot be parsed.
        """
        return cls(
            id=str(data[WIRE_KEYS["id"]]),
            demand_id=str(data.get(WIRE_KEYS["demand_id"]) or ""),
            description=str(data.get(WIRE_KEYS["description"]) or ""),
            created_at=data[WIRE_KEYS["created_at"]],
        )


class SaveMode(str, Enum):
    """How ``DemandService.save`` treats the month's existing rows."""

    REPLACE_ALL = "replace_all"
    UPSERT_SELECTED = "upsert_selected"


@dataclass
class DuplicateDemand:
    """A candidate whose demandId is already used in its month."""

    demand_id: str
    description: str

    def to_dict(self) -> dict[str, str]:
        return {"demandId": self.demand_id, "description": self.description}


@dataclass
class SearchResult:
    """One page of search hits.

    ``error`` is set when the lookup failed and the empty page is a
    degraded answer rather than a genuine "no matches".
    """

    records: list[DemandRecord] = field(default_factory=list)
    total: int = 0
    has_more: bool = False
    error: str | None = None

    @classmethod
    def page(cls, records: list[DemandRecord], total: int, offset: int) -> "SearchResult":
        return cls(records=records, total=total,
                   has_more=(offset + len(records)) < total)

    @classmethod
    def failed(cls, error: str) -> "SearchResult":
        return cls(error=error)

    def to_dict(self) -> dict[str, Any]:
        return {
            "records": [r.to_wire() for r in self.records],
            "total": self.total,
            "hasMore": self.has_more,
        }
