"""Demand records: storage, month index, search and CRUD service."""

from demands.archive import ArchiveDocument, MonthArchive
from demands.models import (
    DemandRecord,
    DuplicateDemand,
    SaveMode,
    SearchResult,
    is_valid_year_month,
    month_of,
)
from demands.months import MonthIndex
from demands.search import SearchEngine
from demands.service import DemandService
from demands.store import (
    RecordStore,
    SaveVerificationError,
    StoreCorruptedError,
    StoreError,
    StoreResult,
)

__all__ = [
    "ArchiveDocument",
    "DemandRecord",
    "DemandService",
    "DuplicateDemand",
    "MonthArchive",
    "MonthIndex",
    "RecordStore",
    "SaveMode",
    "SaveVerificationError",
    "SearchEngine",
    "SearchResult",
    "StoreCorruptedError",
    "StoreError",
    "StoreResult",
    "is_valid_year_month",
    "month_of",
]
