"""Tests for demands/export.py: CSV, NDJSON and Excel export."""

import csv
import io
import json

import pytest

from demands.export import (
    CSV_HEADER,
    export_filename,
    iter_ndjson,
    to_csv,
    to_xlsx,
)


def test_csv_header_and_rows(march_records):
    rows = list(csv.reader(io.StringIO(to_csv(march_records))))
    assert rows[0] == ["demandId", "description", "createdAt"]
    assert rows[1] == ["REQ-001", "月度报表导出", "2025-03-03 09:00:00"]
    assert len(rows) == 4


def test_csv_quotes_commas_quotes_and_newlines(new_record):
    record = new_record("q1", "REQ,1", 'says "hi"\nsecond line', "2025-03-01T00:00:00Z")
    text = to_csv([record])
    assert '"REQ,1"' in text
    rows = list(csv.reader(io.StringIO(text)))
    assert rows[1] == ["REQ,1", 'says "hi"\nsecond line', "2025-03-01 00:00:00"]


def test_csv_empty_is_header_only():
    assert to_csv([]) == ",".join(CSV_HEADER) + "\n"


def test_ndjson_lines_are_wire_records(april_records):
    lines = list(iter_ndjson(april_records))
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first == {
        "id": "a1",
        "demandId": "REQ-101",
        "description": "refund workflow",
        "createdAt": "2025-04-02T11:00:00.000+00:00",
    }


def test_xlsx_workbook(march_records):
    openpyxl = pytest.importorskip("openpyxl")
    wb = openpyxl.load_workbook(io.BytesIO(to_xlsx(march_records, sheet_title="2025-03")))
    ws = wb["2025-03"]
    rows = list(ws.iter_rows(values_only=True))
    assert rows[0] == tuple(CSV_HEADER)
    assert rows[2] == ("REQ-002", "POS挂单修改客户", "2025-03-10 14:30:00")
    assert len(rows) == 4


def test_export_filename():
    assert export_filename("csv", "2025-03") == "demands_2025-03.csv"
    assert export_filename("json") == "demands_all.ndjson"
    assert export_filename("xlsx") == "demands_all.xlsx"
