"""
FastAPI application factory for the demand records service.

Usage:
    python -m api.app                    # Dev server on port 8000
    APP_DB_PATH=/data/demands.db python -m api.app

OpenAPI docs available at http://localhost:8000/docs after starting.

Logging is plain text by default; APP_LOG_FORMAT=json emits one JSON object
per line.  Every response carries an X-Request-ID that also appears in the
request log line.
"""

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.database import build_service, get_store, open_store
from api.routes import demands, download, months, search
from demands.store import TABLE, RecordStore, StoreCorruptedError
from utils.config import AppConfig

# ── Configuration ─────────────────────────────────────────────────────────────
_cfg = AppConfig.from_env()


# ── Structured JSON logging ───────────────────────────────────────────────────

class _JsonFormatter(logging.Formatter):
    """Emit log records as newline-delimited JSON."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Merge extra fields added via logger.info("...", extra={...})
        for key in ("method", "path", "status", "duration_ms", "client_ip",
                    "request_id"):
            if hasattr(record, key):
                data[key] = getattr(record, key)
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False)


def configure_logging(cfg: AppConfig) -> None:
    """Install one root handler in the configured format and level."""
    handler = logging.StreamHandler()
    if cfg.log_format == "json":
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
    logging.basicConfig(handlers=[handler], level=cfg.log_level, force=True)


_logger = logging.getLogger("demands_api")
configure_logging(_cfg)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store at startup and close it at shutdown."""
    store = app.state.service.store
    _logger.info("Starting with settings %s store=%s",
                 app.state.config.to_dict(), store.config.to_dict())
    open_store(store)
    try:
        yield
    finally:
        store.close()
        _logger.info("Store closed path=%s", store.location)


def create_app(db_path: Path | str | None = None,
               backup_dir: Path | str | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        db_path: Override the database path (useful for testing).
        backup_dir: Override where corrupt-store copies are written.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="Demand Records API",
        summary="Monthly demand records with keyword search.",
        description=(
            "## Demand Records API\n\n"
            "Records (id, demandId, description, createdAt) are grouped into "
            "`YYYY-MM` month buckets by creation time.\n\n"
            "- **Save** replaces a whole month (`replace_all`) or re-saves "
            "selected records by id (`upsert_selected`).\n"
            "- **Search** matches demandId substrings, or descriptions through "
            "SQLite FTS5 with a substring fallback for CJK text.\n"
            "- **Download** exports CSV, NDJSON or Excel."
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {"name": "months", "description": "Month buckets that hold records."},
            {"name": "demands", "description": "List, save, delete and import records."},
            {"name": "search", "description": "Paginated demandId / description search."},
            {"name": "download", "description": "Export records as CSV, NDJSON or Excel."},
            {"name": "meta", "description": "Health check."},
        ],
    )
    app.state.config = _cfg
    app.state.service = build_service(_cfg, db_path=db_path, backup_dir=backup_dir)

    # ── CORS middleware ───────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cfg.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # ── Request logging middleware ────────────────────────────────────────────

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log each request with a short request id."""
        request_id = str(uuid.uuid4())[:8]
        start = time.monotonic()
        client_ip = request.client.host if request.client else "unknown"
        path = request.url.path

        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000
        response.headers["X-Request-ID"] = request_id

        if _cfg.log_format == "json":
            _logger.info(
                "request",
                extra={
                    "method": request.method,
                    "path": path,
                    "status": response.status_code,
                    "duration_ms": round(duration_ms, 1),
                    "client_ip": client_ip,
                    "request_id": request_id,
                },
            )
        else:
            _logger.info(
                "method=%s path=%s status=%d duration_ms=%.1f ip=%s rid=%s",
                request.method, path, response.status_code, duration_ms,
                client_ip, request_id,
            )
        if duration_ms > 500:
            _logger.warning(
                "slow_request method=%s path=%s duration_ms=%.1f",
                request.method, path, duration_ms,
            )
        return response

    # ── Error handling ────────────────────────────────────────────────────────

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Catch unhandled exceptions and return JSON instead of HTML traceback."""
        _logger.error("unhandled error path=%s", request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc),
                "status_code": 500,
            },
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        _logger.warning("bad request path=%s detail=%s", request.url.path, exc)
        return JSONResponse(
            status_code=400,
            content={"error": "Bad request", "detail": str(exc), "status_code": 400},
        )

    @app.exception_handler(StoreCorruptedError)
    async def corrupted_store_handler(request: Request, exc: StoreCorruptedError):
        """The store was rebuilt empty; tell the client once, then carry on."""
        return JSONResponse(
            status_code=503,
            content={
                "error": "Store corrupted and re-initialized",
                "detail": str(exc),
                "status_code": 503,
            },
        )

    # ── Health check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["meta"], summary="Health check")
    def health(store: RecordStore = Depends(get_store)):
        """Return 200 OK if the API is running and can reach the store."""
        result = store.try_query_one(f"SELECT COUNT(*) AS n FROM {TABLE}")
        if not result.ok:
            return JSONResponse(
                status_code=503,
                content={"status": "degraded", "database": store.location,
                         "error": str(result.error)},
            )
        return {
            "status": "ok",
            "database": store.location,
            "records": result.value["n"],
            "fts_enabled": store.fts_enabled,
        }

    # ── Register routers ──────────────────────────────────────────────────────

    prefix = "/api/v1"
    app.include_router(months.router,   prefix=prefix)
    app.include_router(demands.router,  prefix=prefix)
    app.include_router(search.router,   prefix=prefix)
    app.include_router(download.router, prefix=prefix)

    return app


# Singleton instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.app:app",
        host=_cfg.api_host,
        port=_cfg.api_port,
        reload=True,
        log_level=_cfg.log_level.lower(),
    )
