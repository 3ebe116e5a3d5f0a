"""Shared fixtures: in-memory database, OTP store and a mocked email sender."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from flexify_auth.models.user import Base, User
from flexify_auth.otp.store import OTPStore
from flexify_auth.security import hash_password
from flexify_auth.services.email_service import EmailService
from flexify_auth.services.resend_tracker import ResendTracker

SEED_HASH = hash_password("old-password")


@pytest_asyncio.fixture
async def db_session():
    """Create tables in a fresh in-memory DB, seed accounts and yield a session."""
    engine = create_async_engine("sqlite+aiosqlite://", echo=False)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with session_factory() as session:
        session.add_all(
            [
                User(
                    name="Caloy Reyes",
                    email="user@test.com",
                    password_hash=SEED_HASH,
                ),
                User(
                    name="Roberto Cruz",
                    email="other@test.com",
                    password_hash=SEED_HASH,
                ),
                User(
                    name="Former Member",
                    email="inactive@test.com",
                    password_hash=SEED_HASH,
                    is_active=False,
                ),
            ]
        )
        await session.commit()
        yield session

    await engine.dispose()


class NoopTimer:
    def cancel(self) -> None:
        pass


@pytest.fixture
def otp_store():
    """Store whose expiry timers never fire on their own."""
    return OTPStore(ttl_seconds=600, scheduler=lambda delay, callback: NoopTimer())


@pytest.fixture
def resend_tracker():
    return ResendTracker(cooldown_seconds=30)


@pytest.fixture
def email_service():
    """Mocked email service — never actually sends emails."""
    svc = EmailService()
    svc.send_otp = AsyncMock()
    return svc
