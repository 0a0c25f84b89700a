"""
Investor Intake API — application entry-point.

Initializes the FastAPI application, registers middleware, exception handlers
and routers, and manages the application lifecycle (table creation on
startup, pool disposal on shutdown).

Run with::

    uvicorn investor_intake.main:app
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel

import investor_intake.models  # noqa: F401  (populates SQLModel.metadata)
from investor_intake.api.v1.api import api_router
from investor_intake.core.config import settings
from investor_intake.core.exceptions import add_exception_handlers
from investor_intake.core.logging import setup_logging
from investor_intake.core.resilience import db_circuit_breaker
from investor_intake.db.session import AsyncSessionLocal, engine
from investor_intake.middleware import RequestIDMiddleware, RequestTimingMiddleware
from investor_intake.services.file_store import get_file_store

setup_logging()
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


# ────────────────────────────────────────────────────────────────────────────
# Application lifespan
# ────────────────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup:
      - Creates tables, retrying the initial connection with exponential
        back-off.  If the database stays unreachable the app starts in
        degraded mode and ``/health`` reports ``database: false``.

    Shutdown:
      - Disposes of the connection pool.
    """
    max_retries = 5
    retry_delay = 2  # seconds, doubled after each failed attempt

    for attempt in range(1, max_retries + 1):
        try:
            logger.info("Connecting to database (attempt %d/%d)", attempt, max_retries)
            async with engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)
            logger.info("Database tables ready")
            break
        except (SQLAlchemyError, OSError) as exc:
            if attempt < max_retries:
                logger.warning(
                    "Database connection failed (attempt %d/%d): %s; retrying in %ds",
                    attempt,
                    max_retries,
                    exc,
                    retry_delay,
                )
                await asyncio.sleep(retry_delay)
                retry_delay *= 2
            else:
                logger.error(
                    "Could not connect to database after %d attempts. Starting in "
                    "DEGRADED mode; submissions will fail until it is reachable. "
                    "Last error: %s",
                    max_retries,
                    exc,
                )

    yield

    logger.info("Shutting down, disposing connection pool")
    await engine.dispose()


# ────────────────────────────────────────────────────────────────────────────
# FastAPI application instance
# ────────────────────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=VERSION,
    description=(
        "Collects investor details and identity documents, validates them, "
        "stores the documents and records the investor."
    ),
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

# ── Middleware (last added = outermost) ──
app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(RequestTimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)

app.include_router(api_router, prefix=settings.API_V1_STR)


# ── Health check ──


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Liveness / readiness probe.

    Runs ``SELECT 1`` against the database and checks that the upload
    directory is writable (it may legitimately not exist yet; it is created
    on the first submission).  Also reports the circuit breaker state.
    """
    db_healthy = True
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        logger.warning("Health check: database unreachable", exc_info=True)
        db_healthy = False

    uploads = get_file_store().directory_status()
    uploads_ok = uploads["writable"] or not uploads["exists"]

    status = "ok" if db_healthy and uploads_ok else "degraded"
    return {
        "status": status,
        "version": VERSION,
        "database": db_healthy,
        "uploads": uploads,
        "circuit_breaker": db_circuit_breaker.get_status(),
    }
