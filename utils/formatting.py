"""Output formatting utilities for the demand record tools.

Provides reusable functions for:
- Timestamp display (CSV export, CLI tables)
- Text truncation for terminal output
- Count formatting
"""

from datetime import datetime
from typing import Optional

DISPLAY_TIMESTAMP = "%Y-%m-%d %H:%M:%S"


def format_timestamp(value: Optional[datetime], fmt: str = DISPLAY_TIMESTAMP) -> str:
    """Format a datetime for display.

    Examples:
        format_timestamp(datetime(2025, 3, 1, 18, 33)) -> "2025-03-01 18:33:00"
        format_timestamp(None) -> ""
    """
    if value is None:
        return ""
    return value.strftime(fmt)


def format_count(value: Optional[int]) -> str:
    """Format an integer count with thousands separators.

    Examples:
        format_count(1234) -> "1,234"
        format_count(None) -> "-"
    """
    if value is None:
        return "-"
    return f"{value:,}"


def truncate_text(text: Optional[str], max_len: int = 60, suffix: str = "...") -> str:
    """Truncate text to *max_len* characters, adding *suffix* when cut.

    Examples:
        truncate_text("POS挂单修改客户", 5) -> "PO..."
    """
    if not text:
        return ""
    if len(text) <= max_len:
        return text
    if max_len <= len(suffix):
        return text[:max_len]
    return text[:max_len - len(suffix)] + suffix
