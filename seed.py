"""Seed script — populates the database with sample accounts for testing."""

import asyncio

from sqlalchemy.ext.asyncio import AsyncSession

from flexify_auth.database.engine import async_session_factory, init_db
from flexify_auth.models.user import User
from flexify_auth.security import hash_password

SAMPLE_USERS = [
    ("Caloy Reyes", "caloy@example.com", "workout-2024"),
    ("Roberto Cruz", "roberto@example.com", "sunset-views"),
    ("Berting Lim", "berting@example.com", "algorithm-test"),
]


async def seed() -> None:
    """Insert sample users into the database."""
    await init_db()
    async with async_session_factory() as session:
        session: AsyncSession
        for name, email, password in SAMPLE_USERS:
            session.add(User(name=name, email=email, password_hash=hash_password(password)))
        await session.commit()
    print(f"✅ Seeded {len(SAMPLE_USERS)} users into the database.")


if __name__ == "__main__":
    asyncio.run(seed())
