"""
Pytest fixtures for the demand record tests.

Provides a temp-file ``RecordStore``, a ``DemandService`` over it, and a
populated service holding the reference scenario: three records in
2025-03 and two in 2025-04.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

_PROJECT_ROOT = str(Path(__file__).resolve().parent.parent)
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from demands.models import DemandRecord, SaveMode  # noqa: E402
from demands.service import DemandService  # noqa: E402
from demands.store import RecordStore  # noqa: E402


def make_record(rid: str, demand_id: str = "", description: str = "",
                created_at: datetime | str = "2025-03-01T09:00:00Z") -> DemandRecord:
    """Build a record; naive or string timestamps are taken as UTC."""
    return DemandRecord(id=rid, demand_id=demand_id, description=description,
                        created_at=created_at)


MARCH_RECORDS = [
    make_record("m1", "REQ-001", "月度报表导出", datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)),
    make_record("m2", "REQ-002", "POS挂单修改客户", datetime(2025, 3, 10, 14, 30, tzinfo=timezone.utc)),
    make_record("m3", "", "monthly report export", datetime(2025, 3, 21, 8, 15, tzinfo=timezone.utc)),
]

APRIL_RECORDS = [
    make_record("a1", "REQ-101", "refund workflow", datetime(2025, 4, 2, 11, 0, tzinfo=timezone.utc)),
    make_record("a2", "REQ-001", "库存报表", datetime(2025, 4, 18, 16, 45, tzinfo=timezone.utc)),
]


@pytest.fixture()
def db_path(tmp_path):
    return tmp_path / "demands.db"


@pytest.fixture()
def backup_dir(tmp_path):
    return tmp_path / "backups"


@pytest.fixture()
def store(db_path, backup_dir):
    """An open, empty record store backed by a temp file."""
    s = RecordStore(db_path, backup_dir=backup_dir)
    s.open()
    yield s
    s.close()


@pytest.fixture()
def service(store):
    return DemandService(store)


@pytest.fixture()
def populated_service(service):
    """Service whose store holds 3 records in 2025-03 and 2 in 2025-04."""
    assert service.save(MARCH_RECORDS, "2025-03", SaveMode.REPLACE_ALL)
    assert service.save(APRIL_RECORDS, "2025-04", SaveMode.REPLACE_ALL)
    return service


@pytest.fixture()
def new_record():
    """Factory fixture: ``new_record(id, demand_id, description, created_at)``."""
    return make_record


@pytest.fixture()
def march_records():
    return list(MARCH_RECORDS)


@pytest.fixture()
def april_records():
    return list(APRIL_RECORDS)
