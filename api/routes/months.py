"""
GET /api/v1/months endpoint.

Lists the month buckets that currently hold records, newest first, with
optional per-month record counts.
"""

from fastapi import APIRouter, Depends, Query

from api.database import get_service
from api.models import MonthCountOut, MonthsResponse
from demands.service import DemandService

router = APIRouter(prefix="/months", tags=["months"])


@router.get("", response_model=MonthsResponse, summary="List months with records")
def list_months(
    with_counts: bool = Query(False, description="Include record counts per month"),
    service: DemandService = Depends(get_service),
) -> MonthsResponse:
    """Return distinct ``YYYY-MM`` months, most recent first."""
    if not with_counts:
        return MonthsResponse(months=service.list_available_months())
    counts = service.months.month_counts()
    return MonthsResponse(
        months=[month for month, _ in counts],
        counts=[MonthCountOut(year_month=month, count=n) for month, n in counts],
    )
