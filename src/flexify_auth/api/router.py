"""Password-reset API router.

Endpoints
---------
POST /api/reset-password     → issue an OTP and email it
POST /api/verify-otp         → check an OTP (does not consume it)
POST /api/set-new-password   → re-check the OTP, change password, clear OTP
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from flexify_auth.config import settings
from flexify_auth.database.engine import get_session
from flexify_auth.errors import (
    INVALID_OTP_MESSAGE,
    DeliveryFailedError,
    InvalidOTPError,
    PasswordPolicyError,
    ResendTooSoonError,
)
from flexify_auth.otp.store import OTPStore
from flexify_auth.services.email_service import EmailService
from flexify_auth.services.resend_tracker import ResendTracker
from flexify_auth.services.reset_service import PasswordResetService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["password-reset"])

# ── Shared instances (created once, reused across requests) ──
otp_store = OTPStore(settings.otp_ttl_seconds, settings.otp_length)
resend_tracker = ResendTracker(settings.otp_resend_cooldown_seconds)
_email_service = EmailService()


def get_reset_service(
    db_session: AsyncSession = Depends(get_session),
) -> PasswordResetService:
    """Build a per-request service around the shared store."""
    return PasswordResetService(
        otp_store=otp_store,
        email_service=_email_service,
        resend_tracker=resend_tracker,
        db_session=db_session,
    )


# ── Request / response models ────────────────────────────

class ResetPasswordRequest(BaseModel):
    email: str = ""


class VerifyOTPRequest(BaseModel):
    email: str = ""
    otp: str = ""


class SetNewPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str = ""
    otp: str = ""
    new_password: str = Field("", alias="newPassword")


class ApiResponse(BaseModel):
    success: bool
    message: str


def _reply(status_code: int, success: bool, message: str) -> JSONResponse:
    body = ApiResponse(success=success, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump())


# ── Endpoints ────────────────────────────────────────────

@router.post("/reset-password", response_model=ApiResponse)
async def reset_password(
    body: ResetPasswordRequest,
    service: PasswordResetService = Depends(get_reset_service),
):
    """Send a password-reset OTP to the given email."""
    if not body.email.strip():
        return _reply(400, False, "Email is required")

    try:
        await service.request_otp(body.email)
    except ResendTooSoonError as exc:
        response = _reply(429, False, str(exc))
        response.headers["Retry-After"] = str(exc.retry_after)
        return response
    except DeliveryFailedError:
        return _reply(500, False, "Failed to send OTP. Please try again later.")

    return _reply(200, True, "OTP has been sent to your email.")


@router.post("/verify-otp", response_model=ApiResponse)
async def verify_otp(
    body: VerifyOTPRequest,
    service: PasswordResetService = Depends(get_reset_service),
):
    """Check an OTP without consuming it."""
    if not body.email.strip() or not body.otp.strip():
        return _reply(400, False, "Email and OTP are required")

    try:
        service.verify_otp(body.email, body.otp)
    except InvalidOTPError:
        return _reply(400, False, INVALID_OTP_MESSAGE)

    return _reply(200, True, "OTP verified successfully. Proceed to reset password.")


@router.post("/set-new-password", response_model=ApiResponse)
async def set_new_password(
    body: SetNewPasswordRequest,
    service: PasswordResetService = Depends(get_reset_service),
):
    """Change the password for a verified OTP, then clear the OTP."""
    if not body.email.strip() or not body.otp.strip() or not body.new_password:
        return _reply(400, False, "All fields are required")

    try:
        await service.reset_password(body.email, body.otp, body.new_password)
    except PasswordPolicyError as exc:
        return _reply(400, False, str(exc))
    except InvalidOTPError:
        return _reply(400, False, INVALID_OTP_MESSAGE)

    return _reply(200, True, "Password has been reset successfully.")
