"""
GET /api/v1/search endpoint.

``type=id`` matches a substring of demandId.  ``type=description`` uses the
FTS5 mirror when the store has one and retries as a substring match when
full-text finds nothing, so CJK fragments like "报表" still match.

Results are paginated newest first with ``total`` and ``hasMore`` for a
"load more" control.  A failed lookup answers with an empty page rather
than an error status.
"""

import logging

from fastapi import APIRouter, Depends, Query

from api.database import get_service
from api.models import DemandRecordOut, SearchResponse
from demands.service import DemandService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["search"])


@router.get("", response_model=SearchResponse, summary="Search records by demandId or description")
def search(
    term: str = Query(..., min_length=1, max_length=200, description="Search term"),
    type: str = Query("id", pattern="^(id|description)$", description="Field to search"),
    limit: int | None = Query(None, ge=1, le=100, description="Page size (default 20)"),
    offset: int = Query(0, ge=0, description="Pagination offset"),
    service: DemandService = Depends(get_service),
) -> SearchResponse:
    engine = service.search_engine
    result = engine.search(term, type, limit, offset)
    if result.error:
        logger.warning("search degraded to empty page type=%s term=%r error=%s",
                       type, term, result.error)
    page_size = min(limit or engine.default_limit, engine.max_limit)
    return SearchResponse(
        term=term,
        type=type,
        limit=page_size,
        offset=offset,
        total=result.total,
        has_more=result.has_more,
        records=[DemandRecordOut.from_record(r) for r in result.records],
    )
