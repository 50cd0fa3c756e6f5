"""String processing utilities for the demand record tools."""

from utils.patterns import FTS5_SPECIAL_CHARS, LIKE_SPECIAL_CHARS, WHITESPACE

FTS5_KEYWORDS = {"AND", "OR", "NOT", "NEAR"}


def normalize_whitespace(s: str) -> str:
    """Normalize multiple whitespace characters to single spaces.

    Example:
        "月度   报表\\n 导出" -> "月度 报表 导出"
    """
    return WHITESPACE.sub(' ', s).strip()


def sanitize_fts5_query(query: str, operator: str = "AND") -> str:
    """Sanitize user input for safe use in SQLite FTS5 MATCH expressions.

    FTS5 has special operators (AND, OR, NOT, NEAR) and special characters
    that interfere with simple literal search. This function:
    1. Strips FTS5 operator characters
    2. Removes FTS5 boolean keywords
    3. Wraps terms in quotes for literal matching
    4. Joins with ``operator`` (AND narrows, OR broadens)

    Example:
        'monthly report' -> '"monthly" AND "report"'
        'pos "refund"'   -> '"pos" AND "refund"'

    Args:
        query: Raw user search query
        operator: "AND" or "OR"

    Returns:
        Sanitized FTS5 query string, or "" when nothing searchable remains
    """
    op = "OR" if operator.upper() == "OR" else "AND"

    cleaned = FTS5_SPECIAL_CHARS.sub(" ", query)
    terms = cleaned.split()
    # Drop FTS5 boolean keywords and empty/dash-only terms
    terms = [t for t in terms if t.upper() not in FTS5_KEYWORDS and t.strip("-")]

    if not terms:
        return ""

    return f" {op} ".join(f'"{t}"' for t in terms)


def escape_like(term: str) -> str:
    """Escape ``%``, ``_`` and ``\\`` so *term* matches literally in LIKE.

    Pair with ``ESCAPE '\\'`` in the SQL.
    """
    return LIKE_SPECIAL_CHARS.sub(r'\\\1', term)


def contains_pattern(term: str) -> str:
    """Return a ``%term%`` LIKE pattern with *term* escaped."""
    return f"%{escape_like(term)}%"
