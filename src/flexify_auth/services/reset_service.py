"""Password-reset service — request, verify and finalize an OTP reset."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from flexify_auth.config import settings
from flexify_auth.database.repository import UserRepository
from flexify_auth.errors import (
    DeliveryFailedError,
    InvalidOTPError,
    PasswordPolicyError,
    ResendTooSoonError,
)
from flexify_auth.otp.store import OTPStore, VerifyResult, normalize_identifier
from flexify_auth.security import hash_password

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from flexify_auth.services.email_service import EmailService
    from flexify_auth.services.resend_tracker import ResendTracker

logger = logging.getLogger(__name__)


class PasswordResetService:
    """Drives the three-step reset flow on top of the OTP store.

    Flow
    ----
    1. ``request_otp`` issues a code and hands it to the email sender.
    2. ``verify_otp`` checks the code without consuming it.
    3. ``reset_password`` checks the code again, changes the password
       and only then clears the code.

    Every invalid-code outcome surfaces as the same ``InvalidOTPError``
    and unknown accounts get the same answer as known ones, so responses
    never reveal whether an email has an account or a pending reset.
    """

    def __init__(
        self,
        otp_store: OTPStore,
        email_service: EmailService,
        resend_tracker: ResendTracker,
        db_session: AsyncSession,
        clear_on_delivery_failure: bool | None = None,
        password_min_length: int | None = None,
    ) -> None:
        self._store = otp_store
        self._email = email_service
        self._resend = resend_tracker
        self._session = db_session
        self._users = UserRepository(db_session)
        self._clear_on_delivery_failure = (
            settings.otp_clear_on_delivery_failure
            if clear_on_delivery_failure is None
            else clear_on_delivery_failure
        )
        self._password_min_length = (
            settings.password_min_length
            if password_min_length is None
            else password_min_length
        )

    async def request_otp(self, email: str) -> None:
        """Issue a code for *email* and send it.

        Raises ``ResendTooSoonError`` inside the cool-down window and
        ``DeliveryFailedError`` when the email cannot be sent.  The code
        stays valid after a failed send unless configured otherwise.
        """
        key = normalize_identifier(email)

        retry_after = self._resend.retry_after(key)
        if retry_after:
            logger.info("OTP requested again for %s within cool-down", key)
            raise ResendTooSoonError(retry_after)
        self._resend.record(key)

        user = await self._users.find_by_email(key)
        if user is None:
            logger.info("Password reset requested for unknown email %s", key)
            return

        code = self._store.issue(key)
        try:
            await self._email.send_otp(user.email, code)
        except DeliveryFailedError:
            self._resend.forget(key)
            if self._clear_on_delivery_failure:
                self._store.clear(key)
            logger.error("OTP delivery failed for %s", key)
            raise

        logger.info("OTP sent to %s", key)

    def verify_otp(self, email: str, code: str) -> None:
        """Raise ``InvalidOTPError`` unless *code* is currently valid for *email*."""
        result = self._store.check(email, code.strip())
        if result is not VerifyResult.VALID:
            raise InvalidOTPError()

    async def reset_password(self, email: str, code: str, new_password: str) -> None:
        """Finalize the reset: re-verify, change the password, clear the code."""
        if len(new_password) < self._password_min_length:
            raise PasswordPolicyError(
                f"Password must be at least {self._password_min_length} characters"
            )

        self.verify_otp(email, code)

        key = normalize_identifier(email)
        user = await self._users.find_by_email(key)
        if user is None:
            # Account disappeared between issuance and reset
            self._store.clear(key)
            raise InvalidOTPError()

        await self._users.update_password(user, hash_password(new_password))
        # The code stays usable until the new password is durably stored
        try:
            await self._session.commit()
        except SQLAlchemyError:
            await self._session.rollback()
            logger.exception("Password update for %s could not be committed", key)
            raise
        self._store.clear(key)
        logger.info("Password reset for %s", key)
