"""
Pydantic request/response models for the API.

Field names are snake_case in Python and camelCase on the wire (``alias``);
requests accept either spelling.  Field() descriptions and examples feed
the OpenAPI docs.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from demands.models import DemandRecord, DuplicateDemand, serialize_timestamp

_YEAR_MONTH_PATTERN = r"^[0-9]{4}-[0-9]{2}$"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ── Records ───────────────────────────────────────────────────────────────────

class DemandRecordIn(_WireModel):
    """A record as sent by a client for save, duplicate check or import."""
    id: str = Field(..., min_length=1, description="Caller-generated unique id (UUID)",
                    examples=["7f8c2a1e-4b9d-4c3e-9a51-0d2f6e8b1c47"])
    demand_id: str = Field("", alias="demandId", description="External demand identifier",
                           examples=["REQ-2025-031"])
    description: str = Field("", description="Free-text description",
                             examples=["月度报表导出"])
    created_at: datetime = Field(..., alias="createdAt",
                                 description="Creation timestamp (ISO 8601; naive values are UTC)")

    def to_record(self) -> DemandRecord:
        return DemandRecord(
            id=self.id,
            demand_id=self.demand_id,
            description=self.description,
            created_at=self.created_at,
        )


class DemandRecordOut(_WireModel):
    """A stored record."""
    id: str = Field(..., description="Unique id")
    demand_id: str = Field("", alias="demandId", description="External demand identifier")
    description: str = Field("", description="Free-text description")
    created_at: str = Field(..., alias="createdAt",
                            description="Creation timestamp, UTC ISO 8601 with milliseconds",
                            examples=["2025-03-01T18:33:00.000+00:00"])

    @classmethod
    def from_record(cls, record: DemandRecord) -> "DemandRecordOut":
        return cls(
            id=record.id,
            demand_id=record.demand_id,
            description=record.description,
            created_at=serialize_timestamp(record.created_at),
        )


class DemandListResponse(_WireModel):
    """Response body for GET /api/v1/demands and /demands/all."""
    year_month: str | None = Field(None, alias="yearMonth", description="Month bucket, or null for all")
    total: int = Field(..., description="Number of records returned", examples=[3])
    records: list[DemandRecordOut] = Field(..., description="Records, newest first")


# ── Months ────────────────────────────────────────────────────────────────────

class MonthCountOut(_WireModel):
    year_month: str = Field(..., alias="yearMonth", examples=["2025-04"])
    count: int = Field(..., description="Records in this month", examples=[2])


class MonthsResponse(_WireModel):
    """Response body for GET /api/v1/months."""
    months: list[str] = Field(..., description="Months with records, newest first",
                              examples=[["2025-04", "2025-03"]])
    counts: list[MonthCountOut] | None = Field(None, description="Per-month counts when requested")


# ── Save / duplicates / delete / import ───────────────────────────────────────

class DuplicateCheckRequest(_WireModel):
    """Request body for POST /api/v1/demands/duplicates."""
    year_month: str = Field(..., alias="yearMonth", pattern=_YEAR_MONTH_PATTERN)
    records: list[DemandRecordIn] = Field(..., description="Candidates about to be saved")


class DuplicateOut(_WireModel):
    demand_id: str = Field(..., alias="demandId")
    description: str = Field("")

    @classmethod
    def from_duplicate(cls, dup: DuplicateDemand) -> "DuplicateOut":
        return cls(demand_id=dup.demand_id, description=dup.description)


class DuplicatesResponse(_WireModel):
    duplicates: list[DuplicateOut] = Field(..., description="Candidates whose demandId is taken")


class SaveRequest(_WireModel):
    """Request body for POST /api/v1/demands/save."""
    year_month: str = Field(..., alias="yearMonth", pattern=_YEAR_MONTH_PATTERN,
                            examples=["2025-03"])
    records: list[DemandRecordIn] = Field(default_factory=list,
                                          description="Records to persist into the month")


class SaveResponse(_WireModel):
    success: bool
    message: str
    count: int = Field(0, description="Records written")
    duplicates: list[DuplicateOut] = Field(default_factory=list)


class DeleteRequest(_WireModel):
    ids: list[str] = Field(..., description="Record ids to delete")


class DeleteResponse(_WireModel):
    deleted: int = Field(..., description="Rows removed")


class ImportRequest(_WireModel):
    records: list[DemandRecordIn] = Field(..., description="Historical records, any months")


class ImportResponse(_WireModel):
    success: bool = Field(..., description="True if every month saved")
    months: dict[str, bool] = Field(..., description="Save result per month")


# ── Search ────────────────────────────────────────────────────────────────────

class SearchResponse(_WireModel):
    """Response body for GET /api/v1/search."""
    term: str = Field(..., description="The search term", examples=["报表"])
    type: str = Field(..., description="'id' or 'description'", examples=["description"])
    limit: int = Field(..., description="Page size used", examples=[20])
    offset: int = Field(..., description="Pagination offset", examples=[0])
    total: int = Field(..., description="Total matching records", examples=[42])
    has_more: bool = Field(..., alias="hasMore", description="offset + len(records) < total")
    records: list[DemandRecordOut] = Field(..., description="One page of matches, newest first")


# ── Errors ────────────────────────────────────────────────────────────────────

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Error category", examples=["Bad request"])
    detail: str | None = Field(None, description="Detailed error message")
    status_code: int = Field(..., description="HTTP status code", examples=[400])
