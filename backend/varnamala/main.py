from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from .api.srs_routes import create_catalog_router, create_srs_router
from .core.clock import SystemClock
from .core.config import get_config
from .core.db import engine, init_db
from .core.exceptions import CatalogLoadError, ImportValidationFailure, InvalidRating, UnknownItem
from .core.logger import setup_logging
from .models.catalog import load_catalog
from .services.card_store import CardStore
from .services.scheduler import SRSScheduler
from .services.srs_session import SRSSession

setup_logging()
logger = logging.getLogger(__name__)
config = get_config()

_start_time = time.time()

limiter = Limiter(key_func=get_remote_address)
app = FastAPI(
    title="Varnamala API",
    version="1.0.0",
    description="Spaced-repetition flashcards for the Hindi alphabet.",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(status_code=429, content={"error": "rate_limited", "detail": "Too many requests, please try again later"})


@app.exception_handler(UnknownItem)
async def unknown_item_handler(request: Request, exc: UnknownItem):
    return JSONResponse(status_code=404, content={"error": "unknown_item", "detail": str(exc)})


@app.exception_handler(InvalidRating)
async def invalid_rating_handler(request: Request, exc: InvalidRating):
    return JSONResponse(status_code=400, content={"error": "invalid_rating", "detail": str(exc)})


@app.exception_handler(ImportValidationFailure)
async def import_failure_handler(request: Request, exc: ImportValidationFailure):
    return JSONResponse(
        status_code=400,
        content={"error": "import_validation_failure", "detail": str(exc), "problems": exc.problems},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "internal_error", "detail": "An unexpected error occurred"})


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "SAMEORIGIN"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=config.security.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(create_catalog_router())
app.include_router(create_srs_router())


def build_srs_session() -> SRSSession:
    catalog = load_catalog(config.catalog.data_dir)
    scheduler = SRSScheduler(config.srs)
    store = CardStore(engine, catalog, scheduler=scheduler, clock=SystemClock())
    return SRSSession(store)


@app.get("/health")
async def healthcheck(request: Request) -> dict:
    uptime = int(time.time() - _start_time)
    srs = getattr(request.app.state, "srs", None)
    return {
        "status": "ok" if srs is not None else "degraded",
        "version": app.version,
        "uptime_seconds": uptime,
        "catalog_items": len(srs.catalog) if srs is not None else 0,
    }


@app.on_event("startup")
async def on_startup() -> None:
    init_db()
    try:
        app.state.srs = build_srs_session()
    except CatalogLoadError:
        logger.exception("Could not load the catalog from %s", config.catalog.data_dir)
        return

    stats = app.state.srs.get_srs_stats()
    for anomaly in app.state.srs.pop_anomalies():
        logger.warning("Recovered at startup: %s", anomaly)
    logger.info(
        "Scheduler ready: %d cards, %d due, %d%% reviewed",
        stats.total_cards,
        stats.due_cards,
        stats.completion_rate,
    )
