"""Pre-compiled regex patterns for the demand record tools.

All patterns are compiled once at module import so the hot paths (month
validation on every request, FTS5 sanitizing on every search) never
recompile.

Usage:
    from utils.patterns import YEAR_MONTH

    if YEAR_MONTH.match(value):
        ...
"""

import re

# Month bucket key: zero-padded, fixed width "YYYY-MM", ASCII digits only.
# \Z rather than $ so a trailing newline never matches.
YEAR_MONTH = re.compile(r'^[0-9]{4}-[0-9]{2}\Z')

# Legacy per-month JSON archive file name: "YYYY-MM.json"
ARCHIVE_FILE_NAME = re.compile(r'^[0-9]{4}-[0-9]{2}\.json\Z')

# FTS5 special characters that need escaping in full-text search queries
FTS5_SPECIAL_CHARS = re.compile(r'[\"()*:^+]')

# Characters with special meaning inside a LIKE pattern
LIKE_SPECIAL_CHARS = re.compile(r'([\\%_])')

# SQLite error messages that indicate an unusable database file
CORRUPTION_MESSAGE = re.compile(
    r'malformed|not a database|corrupt|file is encrypted', re.IGNORECASE
)

# Whitespace normalization: multiple spaces/tabs/newlines
WHITESPACE = re.compile(r'\s+')
