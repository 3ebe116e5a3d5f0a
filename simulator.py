"""Interactive CLI simulator — walk the password-reset flow without a browser."""

import asyncio

from flexify_auth.config import settings
from flexify_auth.database.engine import async_session_factory, init_db
from flexify_auth.errors import OTPError
from flexify_auth.otp.store import OTPStore
from flexify_auth.services.email_service import EmailService
from flexify_auth.services.resend_tracker import ResendTracker
from flexify_auth.services.reset_service import PasswordResetService

GREEN = "\033[92m"
YELLOW = "\033[93m"
CYAN = "\033[96m"
RED = "\033[91m"
DIM = "\033[2m"
BOLD = "\033[1m"
RESET = "\033[0m"


class ConsoleEmailService(EmailService):
    """Prints the code instead of mailing it."""

    async def send_otp(self, to_email: str, code: str) -> None:
        print(f"{CYAN}📧 (to {to_email}) Your OTP is {BOLD}{code}{RESET}")


async def main() -> None:
    print(f"\n{BOLD}{'=' * 52}")
    print(f"  🔑  {settings.app_name} — Password Reset Simulator")
    print(f"{'=' * 52}{RESET}\n")

    await init_db()
    print(f"{DIM}Tip: run seed.py first and use caloy@example.com{RESET}")
    print(f"{DIM}     Commands: request, verify, reset, quit{RESET}\n")

    store = OTPStore(settings.otp_ttl_seconds, settings.otp_length)
    tracker = ResendTracker(settings.otp_resend_cooldown_seconds)
    email_service = ConsoleEmailService()

    email = input(f"{YELLOW}Email: {RESET}").strip()

    while True:
        try:
            command = input(f"{BOLD}> {RESET}").strip().lower()
        except (KeyboardInterrupt, EOFError):
            print(f"\n{DIM}Goodbye!{RESET}")
            break

        if command == "quit":
            print(f"{DIM}Goodbye!{RESET}")
            break
        if command not in {"request", "verify", "reset"}:
            continue

        async with async_session_factory() as db_session:
            service = PasswordResetService(store, email_service, tracker, db_session)
            try:
                if command == "request":
                    await service.request_otp(email)
                    print(f"{GREEN}OTP has been sent to your email.{RESET}")
                elif command == "verify":
                    service.verify_otp(email, input("OTP: "))
                    print(f"{GREEN}OTP verified. Proceed to reset password.{RESET}")
                else:
                    otp = input("OTP: ")
                    await service.reset_password(email, otp, input("New password: "))
                    print(f"{GREEN}Password has been reset successfully.{RESET}")
            except OTPError as exc:
                print(f"{RED}{exc}{RESET}")
            await db_session.commit()

    store.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
