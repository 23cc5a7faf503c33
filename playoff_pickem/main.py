from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from playoff_pickem.core.config import get_settings
from playoff_pickem.core.errors import PickemError
from playoff_pickem.core.logging import setup_logging
from playoff_pickem.db.session import Base, engine, session_scope
from playoff_pickem import models  # noqa: F401  ensure models are imported
from playoff_pickem.services.scheduler import start_scheduler, shutdown_scheduler
from playoff_pickem.services.seed import seed_reference_data

# Routers
from playoff_pickem.routers import api as api_router
from playoff_pickem.routers import admin as admin_router


settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PickemError)
def pickem_error_handler(request: Request, exc: PickemError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


@app.on_event("startup")
def on_startup() -> None:
    # Create tables if not present
    Base.metadata.create_all(bind=engine)
    with session_scope() as db:
        seed_reference_data(db)
    logger.info("Database tables ensured.")

    if not settings.ENABLE_SCHEDULER:
        logger.info("Scheduler disabled by configuration")
        return
    try:
        start_scheduler()
    except Exception:
        logger.exception("Failed to start background scheduler")


@app.on_event("shutdown")
def on_shutdown() -> None:
    try:
        shutdown_scheduler()
    except Exception:
        logger.exception("Failed to shutdown background scheduler")


@app.get("/healthz", response_class=PlainTextResponse)
def healthz():
    return PlainTextResponse("ok")


# Include routers
app.include_router(api_router.router)
app.include_router(admin_router.router)
