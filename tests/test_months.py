"""Tests for demands/months.py: the derived month index."""

from demands.models import SaveMode
from demands.months import MonthIndex


def test_empty_store_has_no_months(store):
    index = MonthIndex(store)
    assert index.list_available_months() == []
    assert index.month_counts() == []


def test_months_newest_first(populated_service):
    assert populated_service.list_available_months() == ["2025-04", "2025-03"]


def test_month_counts(populated_service):
    assert populated_service.months.month_counts() == [("2025-04", 2), ("2025-03", 3)]


def test_months_are_distinct_and_sorted_across_years(service, new_record):
    service.save([new_record("x1", created_at="2024-12-31T23:00:00Z")], "2024-12")
    service.save([new_record("x2", created_at="2025-01-01T00:00:00Z"),
                  new_record("x3", created_at="2025-01-15T00:00:00Z")], "2025-01")
    service.save([new_record("x4", created_at="2024-02-01T00:00:00Z")], "2024-02")
    assert service.list_available_months() == ["2025-01", "2024-12", "2024-02"]


def test_cleared_month_disappears(populated_service):
    assert populated_service.save([], "2025-03", SaveMode.REPLACE_ALL)
    assert populated_service.list_available_months() == ["2025-04"]
