"""FastAPI application entrypoint."""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from burnnote.config import settings
from burnnote.database import engine, get_db, init_db
from burnnote.middleware import SecurityHeadersMiddleware
from burnnote.routers import secrets
from burnnote.services.secret_service import SecretStoreError, StoreUnavailable
from burnnote.services.sweeper import SecretSweeper

# ── Logging setup ────────────────────────────────────────────────────
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger(__name__)

sweeper = SecretSweeper()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await init_db()
    logger.info("Database ready (%s)", engine.url.render_as_string(hide_password=True))

    if settings.sweep_on_startup:
        try:
            await sweeper.run_once()
        except SecretStoreError as exc:
            logger.warning("Startup sweep failed (non-fatal): %s", exc)
    if settings.sweep_enabled:
        sweeper.start()

    yield

    # Shutdown
    await sweeper.stop()
    await engine.dispose()
    logger.info("Database connections closed")


app = FastAPI(
    title="Burnnote",
    description="One-time secret links: each secret can be read exactly once",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
)
app.add_middleware(SecurityHeadersMiddleware)


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    logger.error("%s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": "Secret store temporarily unavailable, please retry"},
    )


# Mount routers
app.include_router(secrets.router, prefix="/api/secrets", tags=["secrets"])


@app.get("/health")
async def health(db: AsyncSession = Depends(get_db)):
    try:
        await db.execute(text("SELECT 1"))
        database = "ok"
    except (DBAPIError, OSError) as exc:
        logger.warning("Health check could not reach the database: %s", exc)
        database = "unavailable"
    return {"status": "ok", "service": "burnnote", "database": database}
