"""
Tests for SQL fragment builders and search-term helpers.

Covers:
- utils/query.py :: build_contains_clause(), build_in_clause(), chunked()
- utils/strings.py :: sanitize_fts5_query(), escape_like(), contains_pattern(),
  normalize_whitespace()
"""
import sqlite3
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from utils.query import NEWEST_FIRST, build_contains_clause, build_in_clause, chunked
from utils.strings import (
    contains_pattern,
    escape_like,
    normalize_whitespace,
    sanitize_fts5_query,
)


# ═══════════════════════════════════════════════════════════════════════════════
# utils/strings.py
# ═══════════════════════════════════════════════════════════════════════════════


class TestSanitizeFts5Query:
    def test_single_term(self):
        assert sanitize_fts5_query("report") == '"report"'

    def test_terms_joined_with_and(self):
        assert sanitize_fts5_query("monthly report") == '"monthly" AND "report"'

    def test_or_operator(self):
        assert sanitize_fts5_query("monthly report", operator="or") == '"monthly" OR "report"'

    def test_special_chars_and_keywords_removed(self):
        assert sanitize_fts5_query('report* OR "refund"') == '"report" AND "refund"'

    def test_hyphenated_term_kept_whole(self):
        assert sanitize_fts5_query("REQ-001") == '"REQ-001"'

    def test_nothing_searchable(self):
        assert sanitize_fts5_query('  ( ) * AND -- ') == ""

    def test_cjk_term(self):
        assert sanitize_fts5_query("报表") == '"报表"'


class TestLikeEscaping:
    @pytest.mark.parametrize("raw,expected", [
        ("plain", "plain"),
        ("50%", "50\\%"),
        ("A_1", "A\\_1"),
        ("a\\b", "a\\\\b"),
    ])
    def test_escape_like(self, raw, expected):
        assert escape_like(raw) == expected

    def test_contains_pattern(self):
        assert contains_pattern("a_b") == "%a\\_b%"


def test_normalize_whitespace():
    assert normalize_whitespace("  月度   报表\n\t导出 ") == "月度 报表 导出"


# ═══════════════════════════════════════════════════════════════════════════════
# utils/query.py
# ═══════════════════════════════════════════════════════════════════════════════


class TestBuildContainsClause:
    def test_column(self):
        clause, params = build_contains_clause("demand_id", "REQ")
        assert clause == "demand_id LIKE ? ESCAPE '\\'"
        assert params == ["%REQ%"]

    def test_alias(self):
        clause, _ = build_contains_clause("description", "x", alias="r")
        assert clause.startswith("r.description LIKE ?")

    def test_unknown_column_rejected(self):
        with pytest.raises(ValueError, match="Invalid search column"):
            build_contains_clause("id; DROP TABLE x", "REQ")

    def test_matches_literally_in_sqlite(self):
        conn = sqlite3.connect(":memory:")
        conn.execute("CREATE TABLE t (demand_id TEXT)")
        conn.executemany("INSERT INTO t VALUES (?)", [("A_1",), ("AB1",), ("a_1",)])
        clause, params = build_contains_clause("demand_id", "A_1")
        rows = conn.execute(f"SELECT demand_id FROM t WHERE {clause} ORDER BY demand_id",
                            params).fetchall()
        conn.close()
        assert [r[0] for r in rows] == ["A_1", "a_1"]


class TestBuildInClause:
    def test_values(self):
        clause, params = build_in_clause("id", ["a", "b", "c"])
        assert clause == "id IN (?,?,?)"
        assert params == ["a", "b", "c"]

    def test_empty_matches_nothing(self):
        assert build_in_clause("id", []) == ("1=0", [])


class TestChunked:
    def test_even_split(self):
        assert list(chunked(range(6), 3)) == [[0, 1, 2], [3, 4, 5]]

    def test_remainder(self):
        assert list(chunked("abcde", 2)) == [["a", "b"], ["c", "d"], ["e"]]

    def test_empty(self):
        assert list(chunked([], 5)) == []


def test_newest_first_breaks_ties_by_rowid():
    assert NEWEST_FIRST == "ORDER BY created_at DESC, rowid DESC"
