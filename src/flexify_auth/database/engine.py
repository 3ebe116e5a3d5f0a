"""Async database engine, session factory and the FastAPI session dependency."""

import logging
from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from flexify_auth.config import settings
from flexify_auth.models.user import Base

logger = logging.getLogger(__name__)

engine = create_async_engine(settings.database_url, echo=settings.debug)

async_session_factory = async_sessionmaker(engine, expire_on_commit=False)


async def init_db() -> None:
    """Create the ``users`` table if it is missing."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_db() -> None:
    """Close pooled connections on shutdown."""
    await engine.dispose()


async def database_ready(session: AsyncSession) -> bool:
    """Round-trip a trivial query; ``False`` when the database is unreachable."""
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Database readiness check failed")
        return False
    return True


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session.

    The reset service commits the password change itself before clearing
    the OTP; the commit here covers anything else left pending.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
