"""
JSON month archive: the file-per-month persistence form that predates the
SQLite store.

Each month lives in ``<data_dir>/YYYY-MM.json`` holding
``{"lastUpdated": <iso>, "records": [<wire record>, ...]}``.  The archive
is kept readable and writable so old exports can be inspected and migrated
(see ``scripts/import_json_archive.py``).
"""

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

from demands.models import DemandRecord, is_valid_year_month, serialize_timestamp
from utils.patterns import ARCHIVE_FILE_NAME

logger = logging.getLogger(__name__)


@dataclass
class ArchiveDocument:
    """Contents of one month file."""

    last_updated: str
    records: list[DemandRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "lastUpdated": self.last_updated,
            "records": [r.to_wire() for r in self.records],
        }


class MonthArchive:
    """Read and write ``YYYY-MM.json`` month documents under *data_dir*."""

    def __init__(self, data_dir: Path | str) -> None:
        self.data_dir = Path(data_dir)

    def path_for(self, year_month: str) -> Path:
        """File path for *year_month*.

        Raises:
            ValueError: If *year_month* is not a valid ``YYYY-MM`` key.
        """
        file_name = f"{year_month}.json"
        if not is_valid_year_month(year_month) or not ARCHIVE_FILE_NAME.match(file_name):
            raise ValueError(f"Invalid archive month: {year_month!r} (expected YYYY-MM)")
        return self.data_dir / file_name

    def list_months(self) -> list[str]:
        """Months with an archive file, newest first."""
        if not self.data_dir.is_dir():
            return []
        months = [
            p.stem for p in self.data_dir.iterdir()
            if p.is_file() and ARCHIVE_FILE_NAME.match(p.name) and is_valid_year_month(p.stem)
        ]
        return sorted(months, reverse=True)

    def load(self, year_month: str) -> ArchiveDocument | None:
        """Read one month; None when the file does not exist.

        Raises:
            ValueError: If the month key is invalid, the file is empty, or a
                record in it cannot be parsed.
        """
        path = self.path_for(year_month)
        if not path.exists():
            logger.info("Archive month not found path=%s", path)
            return None
        text = path.read_text(encoding="utf-8")
        if not text.strip():
            raise ValueError(f"Archive file is empty: {path}")
        try:
            data = json.loads(text)
            records = [DemandRecord.from_wire(r) for r in data.get("records", [])]
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"Archive file {path} is not a month document: {exc}") from exc
        logger.info("Archive loaded month=%s records=%d", year_month, len(records))
        return ArchiveDocument(str(data.get("lastUpdated", "")), records)

    def save(self, year_month: str, records: Sequence[DemandRecord]) -> Path:
        """Write *records* as the month document and return its path.

        A failed direct write is retried once through ``<file>.temp`` plus
        an atomic rename; a second failure propagates.
        """
        path = self.path_for(year_month)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        document = ArchiveDocument(
            serialize_timestamp(datetime.now(timezone.utc)), list(records)
        )
        payload = json.dumps(document.to_dict(), ensure_ascii=False, indent=2)
        try:
            path.write_text(payload, encoding="utf-8")
        except OSError as exc:
            logger.warning("Direct archive write failed path=%s error=%s; retrying via temp file",
                           path, exc)
            temp_path = path.with_name(path.name + ".temp")
            temp_path.write_text(payload, encoding="utf-8")
            os.replace(temp_path, path)
        if path.stat().st_size == 0:
            raise OSError(f"Archive file is empty after write: {path}")
        logger.info("Archive saved month=%s records=%d path=%s",
                    year_month, len(document.records), path)
        return path
