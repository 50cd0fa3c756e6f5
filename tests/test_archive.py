"""Tests for demands/archive.py: the legacy YYYY-MM.json month documents."""

import json
from pathlib import Path

import pytest

from demands.archive import MonthArchive


@pytest.fixture()
def archive(tmp_path):
    return MonthArchive(tmp_path / "data-json")


def test_save_then_load(archive, march_records):
    path = archive.save("2025-03", march_records)
    assert path.name == "2025-03.json"

    doc = archive.load("2025-03")
    assert doc.last_updated
    assert [r.id for r in doc.records] == [r.id for r in march_records]
    assert doc.records[0].description == "月度报表导出"
    assert doc.records[0].created_at == march_records[0].created_at


def test_file_layout_is_camel_case(archive, march_records):
    path = archive.save("2025-03", march_records[:1])
    data = json.loads(path.read_text(encoding="utf-8"))
    assert set(data) == {"lastUpdated", "records"}
    assert set(data["records"][0]) == {"id", "demandId", "description", "createdAt"}


def test_list_months_ignores_other_files(archive, march_records, april_records):
    archive.save("2025-03", march_records)
    archive.save("2025-04", april_records)
    (archive.data_dir / "notes.txt").write_text("x")
    (archive.data_dir / "2025-13.json").write_text("{}")
    (archive.data_dir / "2025-03.json.temp").write_text("{}")
    (archive.data_dir / "２０２５-０５.json").write_text("{}", encoding="utf-8")
    assert archive.list_months() == ["2025-04", "2025-03"]


def test_list_months_missing_dir(archive):
    assert archive.list_months() == []


def test_load_missing_month(archive):
    assert archive.load("2030-01") is None


@pytest.mark.parametrize("bad", ["2025-3", "../etc", "2025-13", "2025-03.json", "2025-03\n", "２０２５-０３"])
def test_invalid_month_rejected(archive, bad):
    with pytest.raises(ValueError):
        archive.path_for(bad)


def test_empty_file_rejected(archive):
    archive.data_dir.mkdir(parents=True)
    (archive.data_dir / "2025-03.json").write_text("   ")
    with pytest.raises(ValueError, match="empty"):
        archive.load("2025-03")


def test_malformed_record_rejected(archive):
    archive.data_dir.mkdir(parents=True)
    (archive.data_dir / "2025-03.json").write_text(
        json.dumps({"lastUpdated": "x", "records": [{"demandId": "no id"}]}))
    with pytest.raises(ValueError):
        archive.load("2025-03")


def test_failed_write_retries_through_temp_file(archive, march_records, monkeypatch):
    target = archive.path_for("2025-03")
    real_write_text = Path.write_text
    calls = []

    def flaky_write_text(self, *args, **kwargs):
        calls.append(self.name)
        if self == target and calls.count(target.name) == 1:
            raise PermissionError("locked")
        return real_write_text(self, *args, **kwargs)

    monkeypatch.setattr(Path, "write_text", flaky_write_text)
    path = archive.save("2025-03", march_records)

    assert calls == ["2025-03.json", "2025-03.json.temp"]
    assert path.exists()
    assert not target.with_name("2025-03.json.temp").exists()
    monkeypatch.undo()
    assert len(archive.load("2025-03").records) == 3


def test_second_write_failure_propagates(archive, march_records, monkeypatch):
    def always_fail(self, *args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(Path, "write_text", always_fail)
    with pytest.raises(OSError, match="disk full"):
        archive.save("2025-03", march_records)
