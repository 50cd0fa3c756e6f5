"""
GET /api/v1/download endpoint.

Exports one month (``year_month``) or every record as CSV, newline-delimited
JSON, or Excel.  CSV and NDJSON are streamed line by line; Excel is built
with openpyxl's write_only mode and sent in one piece.

X-Total-Count carries the number of exported records.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from api.database import get_service
from demands.export import MEDIA_TYPES, export_filename, iter_csv, iter_ndjson, to_xlsx
from demands.models import is_valid_year_month
from demands.service import DemandService

router = APIRouter(prefix="/download", tags=["download"])


@router.get("", summary="Download records as CSV, JSON, or Excel")
def download(
    fmt: str = Query("csv", pattern="^(csv|json|xlsx)$", description="Output format"),
    year_month: str | None = Query(None, description="Export one month only (YYYY-MM)"),
    service: DemandService = Depends(get_service),
) -> StreamingResponse:
    """Stream records, newest first."""
    if year_month is not None:
        if not is_valid_year_month(year_month):
            raise ValueError(f"Invalid year_month: '{year_month}'. Expected YYYY-MM")
        records = service.get_by_month(year_month)
    else:
        records = service.get_all()

    headers = {
        "Content-Disposition": f"attachment; filename={export_filename(fmt, year_month)}",
        "X-Total-Count": str(len(records)),
    }

    if fmt == "xlsx":
        content = to_xlsx(records, sheet_title=year_month or "Demands")
        headers["Content-Length"] = str(len(content))
        return StreamingResponse(iter([content]), media_type=MEDIA_TYPES["xlsx"], headers=headers)

    stream = iter_csv(records) if fmt == "csv" else iter_ndjson(records)
    return StreamingResponse(stream, media_type=MEDIA_TYPES[fmt], headers=headers)
