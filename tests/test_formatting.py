"""
Unit tests for utils/formatting.py

Tests all public functions: format_timestamp, format_count, truncate_text.
No database, network, or file I/O required.
"""
import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from utils.formatting import format_count, format_timestamp, truncate_text


# ── format_timestamp ──────────────────────────────────────────────────────────

def test_format_timestamp_none():
    assert format_timestamp(None) == ""


def test_format_timestamp_default():
    assert format_timestamp(datetime(2025, 3, 1, 18, 33)) == "2025-03-01 18:33:00"


def test_format_timestamp_aware_keeps_wall_clock():
    dt = datetime(2025, 3, 1, 18, 33, 5, tzinfo=timezone.utc)
    assert format_timestamp(dt) == "2025-03-01 18:33:05"


def test_format_timestamp_custom_format():
    assert format_timestamp(datetime(2025, 3, 1), "%Y-%m") == "2025-03"


# ── format_count ──────────────────────────────────────────────────────────────

def test_format_count_none():
    assert format_count(None) == "-"


def test_format_count_thousands():
    assert format_count(1234567) == "1,234,567"


def test_format_count_zero():
    assert format_count(0) == "0"


# ── truncate_text ─────────────────────────────────────────────────────────────

def test_truncate_text_empty():
    assert truncate_text(None) == ""
    assert truncate_text("") == ""


def test_truncate_text_short_unchanged():
    assert truncate_text("库存报表", 10) == "库存报表"


def test_truncate_text_cut_with_suffix():
    assert truncate_text("POS挂单修改客户", 5) == "PO..."


def test_truncate_text_tiny_limit_has_no_suffix():
    assert truncate_text("monthly report", 2) == "mo"
