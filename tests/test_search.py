"""
Tests for demands/search.py: demandId substring search, description
full-text search with substring fallback, and pagination.
"""

from datetime import datetime, timedelta, timezone

import pytest

from demands.models import SaveMode
from demands.search import SearchEngine
from demands.store import RecordStore


@pytest.fixture()
def engine(populated_service):
    return populated_service.search_engine


@pytest.fixture()
def many_reports(service, new_record):
    """25 April records with distinct timestamps, all mentioning 'report'."""
    base = datetime(2025, 4, 1, tzinfo=timezone.utc)
    records = [new_record(f"r{i:02d}", f"RPT-{i:02d}", f"weekly report {i}",
                          base + timedelta(hours=i)) for i in range(25)]
    assert service.save(records, "2025-04", SaveMode.REPLACE_ALL)
    return records


def _ids(result):
    return [r.id for r in result.records]


# ── demandId search ───────────────────────────────────────────────────────────

class TestSearchByDemandId:
    def test_substring_match(self, engine):
        result = engine.search_by_demand_id("REQ-00")
        assert set(_ids(result)) == {"m1", "m2", "a2"}
        assert result.total == 3
        assert result.has_more is False
        assert result.error is None

    def test_ascii_case_insensitive(self, engine):
        assert set(_ids(engine.search_by_demand_id("req-101"))) == {"a1"}

    def test_newest_first(self, engine):
        assert _ids(engine.search_by_demand_id("REQ")) == ["a2", "a1", "m2", "m1"]

    def test_like_wildcards_match_literally(self, service, new_record):
        service.save([new_record("w1", "A_1"), new_record("w2", "AB1"),
                      new_record("w3", "50%")], "2025-03")
        assert _ids(service.search_by_demand_id("A_1")) == ["w1"]
        assert _ids(service.search_by_demand_id("%")) == ["w3"]

    def test_blank_term_returns_empty(self, engine):
        result = engine.search_by_demand_id("   ")
        assert result.records == [] and result.total == 0 and result.error is None

    def test_no_match(self, engine):
        result = engine.search_by_demand_id("NOPE")
        assert result.records == [] and result.total == 0 and not result.has_more


# ── description search ────────────────────────────────────────────────────────

class TestSearchByDescription:
    def test_latin_words_match(self, engine):
        assert _ids(engine.search_by_description("report")) == ["m3"]

    def test_multiple_words_all_required(self, engine):
        assert _ids(engine.search_by_description("monthly export")) == ["m3"]
        assert engine.search_by_description("monthly refund").total == 0

    def test_cjk_substring_falls_back(self, engine):
        # unicode61 keeps "月度报表导出" as one token, so FTS alone finds nothing
        result = engine.search_by_description("报表")
        assert _ids(result) == ["a2", "m1"]
        assert result.total == 2
        assert result.has_more is False

    def test_fts_query_syntax_is_neutralized(self, engine):
        result = engine.search_by_description('report* OR "refund"')
        assert result.error is None

    def test_substring_only_store(self, populated_service, monkeypatch):
        store = populated_service.store
        monkeypatch.setattr(RecordStore, "fts_enabled", property(lambda self: False))
        engine = SearchEngine(store)
        assert _ids(engine.search_by_description("port exp")) == ["m3"]
        assert _ids(engine.search_by_description("报表")) == ["a2", "m1"]

    def test_failure_returns_empty_with_error(self, engine, monkeypatch):
        monkeypatch.setattr("demands.search.TABLE", "no_such_table")
        result = engine.search_by_description("report")
        assert result.records == []
        assert result.total == 0
        assert result.has_more is False
        assert result.error


# ── dispatch and pagination ───────────────────────────────────────────────────

class TestPagination:
    def test_dispatch_rejects_unknown_field(self, engine):
        with pytest.raises(ValueError, match="Invalid search type"):
            engine.search("x", field="createdAt")

    def test_dispatch(self, engine):
        assert _ids(engine.search("REQ-101", field="id")) == ["a1"]
        assert _ids(engine.search("refund", field="description")) == ["a1"]

    @pytest.mark.parametrize("field,term", [("id", "RPT"), ("description", "report")])
    def test_pages_cover_total_without_duplicates(self, service, many_reports, field, term):
        seen = []
        offset = 0
        while True:
            page = service.search_engine.search(term, field, limit=10, offset=offset)
            assert page.total == 25
            assert page.has_more == (offset + len(page.records) < page.total)
            seen.extend(_ids(page))
            if not page.has_more:
                break
            offset += len(page.records)
        assert len(seen) == 25
        assert len(set(seen)) == 25
        assert seen[0] == "r24"

    def test_equal_timestamps_paginate_stably(self, service, new_record):
        same = "2025-05-05T05:05:05Z"
        service.save([new_record(f"t{i}", f"TIE-{i}", created_at=same) for i in range(7)],
                     "2025-05")
        seen = []
        for offset in range(0, 7, 3):
            seen.extend(_ids(service.search_by_demand_id("TIE", limit=3, offset=offset)))
        assert sorted(seen) == [f"t{i}" for i in range(7)]

    def test_limit_is_clamped(self, service, many_reports):
        engine = SearchEngine(service.store, default_limit=5, max_limit=10)
        assert len(engine.search_by_demand_id("RPT").records) == 5
        assert len(engine.search_by_demand_id("RPT", limit=500).records) == 10
        assert len(engine.search_by_demand_id("RPT", limit=0).records) == 1

    def test_offset_past_end(self, service, many_reports):
        page = service.search_by_demand_id("RPT", limit=10, offset=100)
        assert page.records == []
        assert page.total == 25
        assert page.has_more is False
