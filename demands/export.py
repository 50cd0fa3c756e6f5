"""
Export demand records as CSV, newline-delimited JSON, or Excel.

CSV columns are ``demandId,description,createdAt`` with ``createdAt``
rendered as ``YYYY-MM-DD HH:MM:SS`` (UTC); the ``id`` column is left out
because it is an internal key.  NDJSON lines carry the full wire form.
Excel uses openpyxl's write_only mode so large months never build a full
in-memory sheet model.
"""

import csv
import io
import json
from typing import Iterable, Iterator

from demands.models import DemandRecord
from utils.formatting import format_timestamp

CSV_HEADER = ["demandId", "description", "createdAt"]

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

MEDIA_TYPES = {
    "csv": "text/csv",
    "json": "application/x-ndjson",
    "xlsx": XLSX_MEDIA_TYPE,
}

FILE_EXTENSIONS = {"csv": "csv", "json": "ndjson", "xlsx": "xlsx"}


def csv_row(record: DemandRecord) -> list[str]:
    return [record.demand_id, record.description, format_timestamp(record.created_at)]


def iter_csv(records: Iterable[DemandRecord]) -> Iterator[str]:
    """Yield the header line, then one CSV line per record."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    yield buf.getvalue()
    for record in records:
        buf.seek(0)
        buf.truncate()
        writer.writerow(csv_row(record))
        yield buf.getvalue()


def to_csv(records: Iterable[DemandRecord]) -> str:
    return "".join(iter_csv(records))


def iter_ndjson(records: Iterable[DemandRecord]) -> Iterator[str]:
    for record in records:
        yield json.dumps(record.to_wire(), ensure_ascii=False) + "\n"


def to_xlsx(records: Iterable[DemandRecord], sheet_title: str = "Demands") -> bytes:
    """Render *records* into an .xlsx workbook and return its bytes."""
    import openpyxl

    wb = openpyxl.Workbook(write_only=True)
    ws = wb.create_sheet(sheet_title)
    ws.append(CSV_HEADER)
    for record in records:
        ws.append(csv_row(record))
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def export_filename(fmt: str, year_month: str | None = None) -> str:
    """Download file name, e.g. ``demands_2025-03.csv`` or ``demands_all.xlsx``."""
    return f"demands_{year_month or 'all'}.{FILE_EXTENSIONS[fmt]}"
