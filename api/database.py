"""
Store lifecycle and FastAPI dependencies for the API.

One ``RecordStore`` is built per application by ``create_app`` and kept on
``app.state``; the lifespan opens it at startup and closes it at shutdown.
Routes never touch a module-global connection: they declare
``Depends(get_store)`` or ``Depends(get_service)``, which read the handle
off the running application so tests can point an app at a temp file.

The default path comes from ``AppConfig`` (APP_DB_PATH, default
data/demands.db).
"""

import logging
from pathlib import Path

from fastapi import HTTPException, Request

from demands.search import SearchEngine
from demands.service import DemandService
from demands.store import RecordStore, StoreCorruptedError, StoreError
from utils.config import AppConfig

logger = logging.getLogger(__name__)


def build_service(cfg: AppConfig, db_path: Path | str | None = None,
                  backup_dir: Path | str | None = None) -> DemandService:
    """Construct (but do not open) the store and the service over it."""
    store = RecordStore(
        db_path if db_path is not None else cfg.db_path,
        backup_dir=backup_dir if backup_dir is not None else cfg.backup_dir,
        config=cfg.database_config(),
    )
    engine = SearchEngine(
        store,
        default_limit=cfg.search_default_limit,
        max_limit=cfg.search_max_limit,
    )
    return DemandService(store, search_engine=engine)


def open_store(store: RecordStore) -> bool:
    """Open *store* at startup.

    A corrupt file has already been backed up and replaced when
    ``StoreCorruptedError`` arrives, so startup continues on the fresh
    store.  Any other failure leaves the store closed; requests retry the
    open lazily.

    Returns:
        True if the store is open.
    """
    try:
        store.open()
    except StoreCorruptedError as exc:
        logger.error("Store was corrupt at startup; continuing with a fresh store: %s", exc)
    except StoreError as exc:
        logger.error("Store could not be opened at startup: %s", exc)
        return False
    logger.info("Store open path=%s fts=%s", store.location, store.fts_enabled)
    return True


def get_service(request: Request) -> DemandService:
    """FastAPI dependency: the application's ``DemandService``.

    Usage in a route::

        from api.database import get_service
        from fastapi import Depends

        @router.get("/example")
        def example(service=Depends(get_service)):
            ...
    """
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Demand store is not configured")
    return service


def get_store(request: Request) -> RecordStore:
    """FastAPI dependency: the application's ``RecordStore``."""
    return get_service(request).store
