"""Email service — delivers password-reset codes via async SMTP."""

from __future__ import annotations

import logging
from email.message import EmailMessage

import aiosmtplib

from flexify_auth.config import settings
from flexify_auth.errors import DeliveryFailedError

logger = logging.getLogger(__name__)

_HTML_TEMPLATE = """\
<!DOCTYPE html>
<html>
  <body style="font-family: 'Segoe UI', Tahoma, sans-serif; background: #f5f5f5;">
    <div style="max-width: 600px; margin: 20px auto; background: #ffffff; border-radius: 8px;">
      <div style="background: #1e40af; color: #ffffff; padding: 30px; text-align: center;">
        <h1 style="margin: 0; letter-spacing: 2px;">{app_name}</h1>
      </div>
      <div style="padding: 30px; color: #333333; font-size: 16px;">
        <p>Hello,</p>
        <p>You have requested to reset your password. Use the OTP below to proceed.</p>
        <div style="border: 2px solid #3b82f6; border-radius: 8px; padding: 20px; text-align: center;">
          <p style="color: #666666; font-size: 14px;">Your One-Time Password (OTP)</p>
          <p style="font-size: 36px; font-weight: bold; color: #3b82f6; letter-spacing: 2px;">{code}</p>
        </div>
        <p>This OTP will expire in {minutes} minutes. If you did not request this, please ignore this email.</p>
        <p style="color: #dc3545; font-size: 12px;">
          <strong>Security Notice:</strong> Never share this code with anyone.
        </p>
      </div>
    </div>
  </body>
</html>
"""


class EmailService:
    """Sends transactional emails using the configured SMTP server.

    With no ``SMTP_HOST`` configured the message is not sent; the code is
    written to the log instead so the flow can be exercised locally.
    """

    async def send_otp(self, to_email: str, code: str) -> None:
        """Send a password-reset code to *to_email*.

        Raises
        ------
        DeliveryFailedError
            If the SMTP server rejects the message or cannot be reached.
        """
        if not settings.smtp_host:
            logger.warning(
                "SMTP_HOST not set — OTP for %s logged only: %s", to_email, code
            )
            return

        minutes = max(settings.otp_ttl_seconds // 60, 1)
        msg = EmailMessage()
        msg["Subject"] = f"Password Reset OTP - {settings.app_name.upper()}"
        msg["From"] = settings.email_from
        msg["To"] = to_email
        msg.set_content(
            f"Your {settings.app_name} password reset code is {code}.\n\n"
            f"It expires in {minutes} minutes. If you did not request this, "
            "please ignore this email."
        )
        msg.add_alternative(
            _HTML_TEMPLATE.format(
                app_name=settings.app_name.upper(), code=code, minutes=minutes
            ),
            subtype="html",
        )

        logger.info("Sending password-reset email to %s", to_email)
        try:
            await aiosmtplib.send(
                msg,
                hostname=settings.smtp_host,
                port=settings.smtp_port,
                username=settings.smtp_username or None,
                password=settings.smtp_password or None,
                start_tls=settings.smtp_start_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send password-reset email to %s: %s", to_email, exc)
            raise DeliveryFailedError(f"Could not deliver OTP to {to_email}") from exc

        logger.info("Password-reset email sent to %s", to_email)
