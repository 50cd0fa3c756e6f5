"""
Demand record endpoints: list, save, duplicate check, delete, import.

GET  /api/v1/demands?year_month=YYYY-MM   records of one month
GET  /api/v1/demands/all                  every record
POST /api/v1/demands/duplicates           duplicate demandId pre-flight
POST /api/v1/demands/save?mode=...        replace_all | upsert_selected
POST /api/v1/demands/delete               delete by id set
POST /api/v1/demands/import               historical import grouped by month

An ``upsert_selected`` save runs the duplicate pre-flight itself and
answers 409 with the conflicting candidates instead of saving.  The check
and the save are separate steps, so a concurrent writer can still slip in
between them.
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from api.database import get_service
from api.models import (
    DeleteRequest,
    DeleteResponse,
    DemandListResponse,
    DemandRecordOut,
    DuplicateCheckRequest,
    DuplicateOut,
    DuplicatesResponse,
    ErrorResponse,
    ImportRequest,
    ImportResponse,
    SaveRequest,
    SaveResponse,
)
from demands.models import SaveMode, is_valid_year_month
from demands.service import DemandService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/demands", tags=["demands"])


def _require_month(year_month: str) -> str:
    if not is_valid_year_month(year_month):
        raise ValueError(f"Invalid year_month: '{year_month}'. Expected YYYY-MM with month 01-12")
    return year_month


@router.get(
    "",
    response_model=DemandListResponse,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    summary="Records of one month",
)
def get_month(
    year_month: str = Query(..., description="Month bucket, YYYY-MM", examples=["2025-03"]),
    service: DemandService = Depends(get_service),
) -> DemandListResponse:
    records = service.get_by_month(_require_month(year_month))
    return DemandListResponse(
        year_month=year_month,
        total=len(records),
        records=[DemandRecordOut.from_record(r) for r in records],
    )


@router.get("/all", response_model=DemandListResponse, summary="Every record, newest first")
def get_all(service: DemandService = Depends(get_service)) -> DemandListResponse:
    records = service.get_all()
    return DemandListResponse(
        total=len(records),
        records=[DemandRecordOut.from_record(r) for r in records],
    )


@router.post("/duplicates", response_model=DuplicatesResponse,
             summary="Find candidates whose demandId is already used in the month")
def check_duplicates(
    body: DuplicateCheckRequest,
    service: DemandService = Depends(get_service),
) -> DuplicatesResponse:
    duplicates = service.check_duplicate_demand_ids(
        [r.to_record() for r in body.records], _require_month(body.year_month)
    )
    return DuplicatesResponse(duplicates=[DuplicateOut.from_duplicate(d) for d in duplicates])


@router.post(
    "/save",
    response_model=SaveResponse,
    responses={
        409: {"model": SaveResponse, "description": "Duplicate demandId in the month"},
        500: {"model": SaveResponse, "description": "Save rolled back"},
    },
    summary="Save records into a month",
)
def save(
    body: SaveRequest,
    mode: SaveMode = Query(SaveMode.REPLACE_ALL, description="replace_all or upsert_selected"),
    service: DemandService = Depends(get_service),
):
    """Persist records into ``yearMonth``.

    ``replace_all`` clears the month first (an empty list just clears it).
    ``upsert_selected`` re-saves only the given records by id.
    """
    year_month = _require_month(body.year_month)
    records = [r.to_record() for r in body.records]

    if mode is SaveMode.UPSERT_SELECTED:
        duplicates = service.check_duplicate_demand_ids(records, year_month)
        if duplicates:
            payload = SaveResponse(
                success=False,
                message=f"{len(duplicates)} demandId(s) already exist in {year_month}",
                duplicates=[DuplicateOut.from_duplicate(d) for d in duplicates],
            )
            return JSONResponse(status_code=status.HTTP_409_CONFLICT,
                                content=payload.model_dump(by_alias=True))

    if not service.save(records, year_month, mode):
        payload = SaveResponse(success=False, message=f"Saving {year_month} failed; nothing was changed")
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                            content=payload.model_dump(by_alias=True))
    return SaveResponse(success=True, message=f"Saved {len(records)} record(s) to {year_month}",
                        count=len(records))


@router.post("/delete", response_model=DeleteResponse, summary="Delete records by id")
def delete(body: DeleteRequest, service: DemandService = Depends(get_service)) -> DeleteResponse:
    return DeleteResponse(deleted=service.delete_by_ids(body.ids))


@router.post("/import", response_model=ImportResponse,
             summary="Import historical records, grouped by creation month")
def import_records(body: ImportRequest, service: DemandService = Depends(get_service)):
    results = service.import_records([r.to_record() for r in body.records])
    payload = ImportResponse(success=all(results.values()), months=results)
    if not payload.success:
        logger.warning("import partially failed months=%s",
                       [m for m, ok in results.items() if not ok])
    return payload
