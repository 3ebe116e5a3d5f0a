"""Flexify auth service — configuration loaded from environment."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, loaded from .env or environment variables."""

    # ── Database ──────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./flexify.db"

    # ── One-time passcodes ────────────────────────────────
    otp_ttl_seconds: int = 600  # 10 minutes
    otp_length: int = 6
    otp_resend_cooldown_seconds: int = 30
    otp_clear_on_delivery_failure: bool = False

    # ── Passwords ─────────────────────────────────────────
    password_min_length: int = 8

    # ── SMTP (empty host → codes are logged, not mailed) ──
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_start_tls: bool = True
    email_from: str = "noreply@flexify.com"

    # ── App ───────────────────────────────────────────────
    app_name: str = "Flexify"
    debug: bool = True

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton settings instance
settings = Settings()
