"""Shared utilities for the demand record tools."""

# Pre-compiled patterns
from utils.patterns import (
    ARCHIVE_FILE_NAME,
    CORRUPTION_MESSAGE,
    FTS5_SPECIAL_CHARS,
    YEAR_MONTH,
)

# String utilities
from utils.strings import (
    contains_pattern,
    escape_like,
    normalize_whitespace,
    sanitize_fts5_query,
)

# Database utilities
from utils.database import (
    create_fts5_mirror,
    drop_fts5_mirror,
    fts5_available,
    init_pragmas,
    rebuild_fts5_mirror,
    table_exists,
)

# SQL fragment builders
from utils.query import (
    NEWEST_FIRST,
    build_contains_clause,
    build_in_clause,
    chunked,
)

# Output formatting
from utils.formatting import (
    format_count,
    format_timestamp,
    truncate_text,
)

# Configuration
from utils.config import (
    AppConfig,
    Config,
    DatabaseConfig,
)

__all__ = [
    # Patterns
    "ARCHIVE_FILE_NAME",
    "CORRUPTION_MESSAGE",
    "FTS5_SPECIAL_CHARS",
    "YEAR_MONTH",
    # Strings
    "contains_pattern",
    "escape_like",
    "normalize_whitespace",
    "sanitize_fts5_query",
    # Database
    "create_fts5_mirror",
    "drop_fts5_mirror",
    "fts5_available",
    "init_pragmas",
    "rebuild_fts5_mirror",
    "table_exists",
    # Query
    "NEWEST_FIRST",
    "build_contains_clause",
    "build_in_clause",
    "chunked",
    # Formatting
    "format_count",
    "format_timestamp",
    "truncate_text",
    # Config
    "AppConfig",
    "Config",
    "DatabaseConfig",
]
