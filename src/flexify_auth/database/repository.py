"""User repository — data access layer for account lookups and updates."""

from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flexify_auth.models.user import User
from flexify_auth.otp.store import normalize_identifier


class UserRepository:
    """Encapsulates all database queries related to users."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_email(self, email: str) -> User | None:
        """Look up an active user by email (case-insensitive)."""
        stmt = select(User).where(
            User.email == normalize_identifier(email), User.is_active.is_(True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def update_password(self, user: User, password_hash: str) -> None:
        """Store a new password hash for *user* and flush it."""
        user.password_hash = password_hash
        user.password_changed_at = datetime.now(UTC)
        await self._session.flush()
