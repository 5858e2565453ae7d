"""Booking backend FastAPI application: entry point.

Start with:
    uvicorn booking_backend.api.main:app --reload --host 0.0.0.0 --port 8000

Database settings come from DATABASE_URL / DB_*, scheduling defaults from
SCHEDULING_*, logging from LOG_*.
"""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from booking_backend.config import load_scheduling_config
from booking_backend.core.exceptions import ProjectError
from booking_backend.core.logger import configure
from booking_backend.infra.database import (
    SqlAlchemyUnitOfWork,
    build_engine,
    build_session_factory,
    close_engine,
    init_db,
)
from booking_backend.scheduling import SchedulingEngine, SystemClock, build_lock

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ── Startup ──────────────────────────────────────────────────
    configure()

    engine = build_engine()
    session_factory = build_session_factory(engine)
    await init_db()

    scheduling_config = load_scheduling_config()
    clock = SystemClock()
    app.state.session_factory = session_factory
    app.state.scheduling_config = scheduling_config
    app.state.clock = clock
    app.state.scheduling_engine = SchedulingEngine(
        SqlAlchemyUnitOfWork(session_factory),
        lock=build_lock(scheduling_config),
        clock=clock,
        config=scheduling_config,
    )
    logger.info("API: scheduling engine ready (lock=%s)", scheduling_config.lock_backend)

    yield

    # ── Shutdown ─────────────────────────────────────────────────
    await close_engine()
    logger.info("API: engine disposed")


app = FastAPI(
    title="Booking API",
    version="1.0.0",
    description="Multi-tenant appointment scheduling: availability, booking and cancellation.",
    lifespan=lifespan,
)

# CORS: allow the admin dev server and any configured origin
_allowed_origins = os.environ.get(
    "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
).split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ProjectError)
async def project_error_handler(request: Request, exc: ProjectError) -> JSONResponse:
    if exc.server_fault:
        logger.error(
            "API: %s on %s: %s", exc.code, request.url.path, exc.message,
            exc_info=exc.cause,
        )
    else:
        logger.info("API: %s on %s: %s", exc.code, request.url.path, exc.message)
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


# ── Routers ───────────────────────────────────────────────────────
from booking_backend.api.routers import bookings  # noqa: E402

app.include_router(bookings.router, prefix="/api/v1")


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
