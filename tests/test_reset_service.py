"""Tests for the PasswordResetService — the full request/verify/reset flow."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from flexify_auth.database.repository import UserRepository
from flexify_auth.errors import (
    DeliveryFailedError,
    InvalidOTPError,
    PasswordPolicyError,
    ResendTooSoonError,
)
from flexify_auth.security import verify_password
from flexify_auth.services.resend_tracker import ResendTracker
from flexify_auth.services.reset_service import PasswordResetService


@pytest.fixture
def service(otp_store, email_service, resend_tracker, db_session):
    return PasswordResetService(
        otp_store=otp_store,
        email_service=email_service,
        resend_tracker=resend_tracker,
        db_session=db_session,
        clear_on_delivery_failure=False,
        password_min_length=8,
    )


def _sent_code(email_service) -> str:
    return email_service.send_otp.await_args.args[1]


# ──────────────────────────────────────────────────────────
# Request OTP
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_request_sends_issued_code(service, email_service, otp_store):
    await service.request_otp("User@Test.com")

    email_service.send_otp.assert_awaited_once()
    to_email, code = email_service.send_otp.await_args.args
    assert to_email == "user@test.com"
    assert otp_store.verify("user@test.com", code)


@pytest.mark.asyncio
async def test_request_for_unknown_email_is_silent(service, email_service, otp_store):
    await service.request_otp("stranger@test.com")

    email_service.send_otp.assert_not_called()
    assert otp_store.has_active("stranger@test.com") is False


@pytest.mark.asyncio
async def test_request_for_inactive_account_is_silent(service, email_service):
    await service.request_otp("inactive@test.com")
    email_service.send_otp.assert_not_called()


@pytest.mark.asyncio
async def test_resend_within_cooldown_rejected(service, email_service):
    await service.request_otp("user@test.com")

    with pytest.raises(ResendTooSoonError) as excinfo:
        await service.request_otp("user@test.com")

    assert 0 < excinfo.value.retry_after <= 30
    assert email_service.send_otp.await_count == 1


@pytest.mark.asyncio
async def test_cooldown_applies_to_unknown_emails_too(service):
    await service.request_otp("stranger@test.com")
    with pytest.raises(ResendTooSoonError):
        await service.request_otp("stranger@test.com")


@pytest.mark.asyncio
async def test_resend_after_cooldown_replaces_code(
    otp_store, email_service, db_session
):
    now = [0.0]
    tracker = ResendTracker(cooldown_seconds=30, clock=lambda: now[0])
    service = PasswordResetService(otp_store, email_service, tracker, db_session)

    await service.request_otp("user@test.com")
    first = _sent_code(email_service)
    now[0] = 31.0
    await service.request_otp("user@test.com")
    second = _sent_code(email_service)

    assert otp_store.verify("user@test.com", second)
    if first != second:
        assert not otp_store.verify("user@test.com", first)


@pytest.mark.asyncio
async def test_delivery_failure_keeps_code(service, email_service, otp_store):
    email_service.send_otp.side_effect = DeliveryFailedError("smtp down")

    with pytest.raises(DeliveryFailedError):
        await service.request_otp("user@test.com")

    assert otp_store.has_active("user@test.com") is True


@pytest.mark.asyncio
async def test_delivery_failure_lifts_cooldown(service, email_service):
    email_service.send_otp.side_effect = DeliveryFailedError("smtp down")
    with pytest.raises(DeliveryFailedError):
        await service.request_otp("user@test.com")

    email_service.send_otp.side_effect = None
    await service.request_otp("user@test.com")
    assert email_service.send_otp.await_count == 2


@pytest.mark.asyncio
async def test_delivery_failure_can_clear_code(
    otp_store, email_service, resend_tracker, db_session
):
    service = PasswordResetService(
        otp_store,
        email_service,
        resend_tracker,
        db_session,
        clear_on_delivery_failure=True,
    )
    email_service.send_otp.side_effect = DeliveryFailedError("smtp down")

    with pytest.raises(DeliveryFailedError):
        await service.request_otp("user@test.com")

    assert otp_store.has_active("user@test.com") is False


# ──────────────────────────────────────────────────────────
# Verify OTP
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_verify_accepts_sent_code_repeatedly(service, email_service):
    await service.request_otp("user@test.com")
    code = _sent_code(email_service)

    service.verify_otp("user@test.com", code)
    service.verify_otp("user@test.com", f" {code} ")


@pytest.mark.asyncio
async def test_verify_rejects_wrong_and_missing_alike(service, email_service):
    await service.request_otp("user@test.com")
    code = _sent_code(email_service)
    wrong = "000000" if code != "000000" else "111111"

    with pytest.raises(InvalidOTPError) as mismatch:
        service.verify_otp("user@test.com", wrong)
    with pytest.raises(InvalidOTPError) as missing:
        service.verify_otp("nobody@test.com", code)

    assert str(mismatch.value) == str(missing.value) == "Invalid or expired OTP"


# ──────────────────────────────────────────────────────────
# Finalize (reset password)
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_reset_password_updates_hash_and_clears_code(
    service, email_service, otp_store, db_session
):
    await service.request_otp("user@test.com")
    code = _sent_code(email_service)
    service.verify_otp("user@test.com", code)

    await service.reset_password("user@test.com", code, "brand-new-secret")

    user = await UserRepository(db_session).find_by_email("user@test.com")
    assert verify_password("brand-new-secret", user.password_hash)
    assert user.password_changed_at is not None
    assert otp_store.has_active("user@test.com") is False

    with pytest.raises(InvalidOTPError):
        await service.reset_password("user@test.com", code, "another-secret")


@pytest.mark.asyncio
async def test_reset_password_requires_valid_code(service):
    with pytest.raises(InvalidOTPError):
        await service.reset_password("user@test.com", "123456", "brand-new-secret")


@pytest.mark.asyncio
async def test_reset_password_enforces_min_length(service, email_service, otp_store):
    await service.request_otp("user@test.com")
    code = _sent_code(email_service)

    with pytest.raises(PasswordPolicyError):
        await service.reset_password("user@test.com", code, "short")

    # The code survives a rejected password
    assert otp_store.verify("user@test.com", code)


@pytest.mark.asyncio
async def test_reset_does_not_touch_other_accounts(service, email_service, otp_store):
    await service.request_otp("other@test.com")
    other_code = _sent_code(email_service)
    await service.request_otp("user@test.com")
    code = _sent_code(email_service)

    await service.reset_password("user@test.com", code, "brand-new-secret")

    assert otp_store.verify("other@test.com", other_code)


@pytest.mark.asyncio
async def test_failed_commit_keeps_code_and_old_password(
    service, email_service, otp_store, db_session
):
    await service.request_otp("user@test.com")
    code = _sent_code(email_service)

    failing_commit = AsyncMock(
        side_effect=OperationalError("COMMIT", {}, Exception("disk I/O error"))
    )
    with patch.object(db_session, "commit", new=failing_commit):
        with pytest.raises(OperationalError):
            await service.reset_password("user@test.com", code, "brand-new-secret")

    assert otp_store.verify("user@test.com", code)
    user = await UserRepository(db_session).find_by_email("user@test.com")
    assert verify_password("old-password", user.password_hash)
    assert user.password_changed_at is None

    # Retrying with the same code succeeds once the database recovers
    await service.reset_password("user@test.com", code, "brand-new-secret")
    assert otp_store.has_active("user@test.com") is False


@pytest.mark.asyncio
async def test_reset_commits_before_clearing(service, email_service, otp_store, db_session):
    await service.request_otp("user@test.com")
    code = _sent_code(email_service)
    active_at_commit: list[bool] = []
    real_commit = db_session.commit

    async def recording_commit():
        active_at_commit.append(otp_store.has_active("user@test.com"))
        await real_commit()

    with patch.object(db_session, "commit", new=recording_commit):
        await service.reset_password("user@test.com", code, "brand-new-secret")

    assert active_at_commit == [True]
    assert otp_store.has_active("user@test.com") is False
