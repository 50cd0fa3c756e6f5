"""
Tests for search_demands.py: the command-line lister/searcher.

Runs main() in-process against a populated temp store and checks the
printed tables, exit codes and CSV export.
"""
import csv
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import search_demands


@pytest.fixture()
def cli_db(populated_service, db_path):
    populated_service.store.close()
    return ["--db", str(db_path), "--backup-dir", str(db_path.parent / "backups")]


def test_no_action_prints_help(cli_db, capsys):
    assert search_demands.main(cli_db) == 1
    assert "usage:" in capsys.readouterr().out


def test_months(cli_db, capsys):
    assert search_demands.main(cli_db + ["--months"]) == 0
    out = capsys.readouterr().out
    assert out.index("2025-04") < out.index("2025-03")
    assert "Total: 5" in out


def test_month_listing(cli_db, capsys):
    assert search_demands.main(cli_db + ["--month", "2025-03"]) == 0
    out = capsys.readouterr().out
    assert "2025-03 (3 shown)" in out
    assert "POS挂单修改客户" in out


def test_empty_month(cli_db, capsys):
    assert search_demands.main(cli_db + ["--month", "2030-01"]) == 0
    assert "No records for: 2030-01" in capsys.readouterr().out


def test_invalid_month(cli_db, capsys):
    assert search_demands.main(cli_db + ["--month", "2025-13"]) == 1
    assert "Invalid month" in capsys.readouterr().err


def test_search_description_cjk(cli_db, capsys):
    assert search_demands.main(cli_db + ["--search", "报表", "--by", "description"]) == 0
    out = capsys.readouterr().out
    assert "库存报表" in out
    assert "月度报表导出" in out
    assert "2 of 2 match(es)" in out


def test_search_paging_hint(cli_db, capsys):
    assert search_demands.main(cli_db + ["--search", "REQ", "--top", "2"]) == 0
    assert "more available with --offset" in capsys.readouterr().out


def test_export_month_csv(cli_db, tmp_path):
    out = tmp_path / "exports" / "march.csv"
    assert search_demands.main(cli_db + ["--month", "2025-03", "--export-csv", str(out)]) == 0
    with open(out, newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["demandId", "description", "createdAt"]
    assert len(rows) == 4


def test_export_all_csv(cli_db, tmp_path):
    out = tmp_path / "all.csv"
    assert search_demands.main(cli_db + ["--export-csv", str(out)]) == 0
    with open(out, newline="", encoding="utf-8") as f:
        assert len(list(csv.reader(f))) == 6
