"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from sqlalchemy.ext.asyncio import AsyncSession

from flexify_auth.api.router import otp_store
from flexify_auth.api.router import router as reset_router
from flexify_auth.config import settings
from flexify_auth.database.engine import database_ready, dispose_db, get_session, init_db

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hook."""
    logger.info("Starting %s …", settings.app_name)
    await init_db()
    logger.info("Database initialised")
    yield
    logger.info("Shutting down %s …", settings.app_name)
    otp_store.shutdown()
    await dispose_db()


app = FastAPI(
    title=settings.app_name,
    description="Password-reset service issuing one-time passcodes by email",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(reset_router)


@app.get("/health")
async def health_check(db_session: AsyncSession = Depends(get_session)):
    """Liveness check that also reports database reachability."""
    db_ok = await database_ready(db_session)
    return {
        "status": "healthy" if db_ok else "degraded",
        "app": settings.app_name,
        "database": "ok" if db_ok else "unavailable",
        "pending_otps": otp_store.active_count,
    }


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "flexify_auth.main:app",
        host="127.0.0.1",
        port=8000,
        log_level="debug" if settings.debug else "info",
    )
