"""
FastAPI application entrypoint.

Lifespan:
  • On startup: verify DB connectivity (non-fatal if unreachable).
  • On shutdown: dispose the engine cleanly.

Routers:
  • /api/auth      — tenant registration and API-key lifecycle (Google id_token)
  • /api/analytics — event collection and aggregation (x-api-key)
  • /auth          — browser login helper for obtaining an id_token
  • /health        — shallow liveness probe
"""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from sqlalchemy import text

from pulse.core.config import settings
from pulse.core.database import engine
from pulse.core.errors import register_error_handlers
from pulse.routers.analytics import router as analytics_router
from pulse.routers.oauth import router as oauth_router
from pulse.routers.tenancy import router as tenancy_router

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""

    # Startup — verify DB is reachable
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection verified ✓")
    except Exception:
        logger.warning(
            "Could not reach the database on startup. "
            "The app will start, but requests will fail until the DB is available."
        )

    if not settings.GOOGLE_CLIENT_ID:
        logger.warning("GOOGLE_CLIENT_ID is empty; every /api/auth request will be rejected")

    yield  # ← application runs here

    # Shutdown — clean up connection pool
    await engine.dispose()
    logger.info("Database engine disposed ✓")


# ── App ─────────────────────────────────────────────────────
app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    description=(
        "Multi-tenant web analytics ingestion — "
        "Google-authenticated key management, API-key-scoped events and aggregates."
    ),
    lifespan=lifespan,
)

register_error_handlers(app)

# Mount routers
app.include_router(tenancy_router, prefix="/api/auth")
app.include_router(analytics_router, prefix="/api/analytics")
app.include_router(oauth_router, prefix="/auth")


# ── Health check ────────────────────────────────────────────
@app.get(
    "/health",
    tags=["System"],
    summary="Liveness probe",
)
async def health_check() -> dict[str, str]:
    """Shallow health check — confirms the process is alive."""
    return {"status": "healthy"}
