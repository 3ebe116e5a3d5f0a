"""Errors raised by the password-reset flow.

None of these come out of the OTP store itself: the store answers with
booleans. They are raised by the service layer and mapped to HTTP
responses by the router.
"""

from __future__ import annotations

INVALID_OTP_MESSAGE = "Invalid or expired OTP"


class OTPError(Exception):
    """Base class for password-reset failures."""


class InvalidOTPError(OTPError):
    """The code is missing, expired, cleared or wrong.

    Deliberately a single error so callers cannot tell a never-requested
    reset apart from an expired one.
    """

    def __init__(self) -> None:
        super().__init__(INVALID_OTP_MESSAGE)


class DeliveryFailedError(OTPError):
    """The notification sender could not deliver the code."""


class ResendTooSoonError(OTPError):
    """A new code was requested before the resend cool-down elapsed."""

    def __init__(self, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(f"Please wait {retry_after} seconds before requesting a new OTP.")


class PasswordPolicyError(OTPError):
    """The new password does not meet the minimum requirements."""
