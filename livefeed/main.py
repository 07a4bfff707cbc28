import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from livefeed.config import settings
from livefeed.database import create_all_tables
from livefeed.routers.activity import router as activity_router
from livefeed.routers.health import router as health_router
from livefeed.routers.ops import router as ops_router
from livefeed.services.catalog import load_catalogs
from livefeed.services.engine import ActivityEngine
from livefeed.services.event_store import create_event_store

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── STARTUP ──────────────────────────────────────────────────────────────
    if settings.EVENT_STORE == "sql" and settings.DATABASE_URL.startswith("sqlite"):
        # Local development only; a real backend owns its own schema.
        await create_all_tables()
        logger.info("Database tables ready")

    catalogs = load_catalogs(settings.SOURCES_CONFIG_PATH)
    incremental, snapshot = catalogs["incremental"], catalogs["snapshot"]
    logger.info(
        "Catalog loaded: %d incremental sources, %d snapshot sources",
        len(incremental),
        len(snapshot),
    )

    store = create_event_store()
    activity_engine = ActivityEngine(
        store,
        incremental_sources=incremental,
        snapshot_sources=snapshot,
    )
    app.state.activity_engine = activity_engine
    activity_engine.start()

    yield

    # ── SHUTDOWN ─────────────────────────────────────────────────────────────
    activity_engine.dispose()
    await store.close()
    logger.info("Event store closed")


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(activity_router, prefix="/api/v1")
app.include_router(health_router)
app.include_router(ops_router)


# ── Request logging middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s → %d [%.1fms]",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    return response


# ── Global 500 handler ────────────────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception on %s: %s", request.url.path, exc, exc_info=True)
    return JSONResponse({"error": str(exc), "status": 500}, status_code=500)
