"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields so the
API can start locally without any configuration; in a production
deployment override them via environment variables.
"""

import os
from dataclasses import dataclass, field
from typing import List


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "UConnect API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "3000"))

    secret_key: str = os.getenv("SECRET_KEY", "change_me")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))

    # Path to the SQLite database.  Relative paths are resolved against
    # the project root by the ``db`` module.
    database_url: str = os.getenv("DATABASE_URL", "uconnect.db")

    # Only institutional addresses may register.
    allowed_email_domains: List[str] = field(
        default_factory=lambda: _split_csv(
            os.getenv("ALLOWED_EMAIL_DOMAINS", "@puce.edu.ec,@epn.edu.ec,@est.ups.edu.ec")
        )
    )

    # Base URL of the web client; confirmation links point here.
    frontend_url: str = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # Outgoing mail.  When ``smtp_host`` is empty no transport is
    # available and every delivery reports a failure.
    smtp_host: str = os.getenv("SMTP_HOST", "")
    smtp_port: int = int(os.getenv("SMTP_PORT", "587"))
    smtp_user: str = os.getenv("SMTP_USER", "")
    smtp_password: str = os.getenv("SMTP_PASSWORD", "")
    smtp_starttls: bool = os.getenv("SMTP_STARTTLS", "true").lower() in {"1", "true", "yes"}
    smtp_timeout: float = float(os.getenv("SMTP_TIMEOUT", "10"))
    mail_sender: str = os.getenv("MAIL_SENDER", "U-Connect <no-reply@uconnect.local>")

    # Cloudinary credentials for the media asset store.
    cloudinary_cloud_name: str = os.getenv("CLOUDINARY_CLOUD_NAME", "")
    cloudinary_api_key: str = os.getenv("CLOUDINARY_API_KEY", "")
    cloudinary_api_secret: str = os.getenv("CLOUDINARY_API_SECRET", "")

    # Pending events buffered per WebSocket subscriber before new ones
    # are dropped for that subscriber.
    realtime_queue_size: int = int(os.getenv("REALTIME_QUEUE_SIZE", "100"))


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables
# must be set before importing this module.
settings = Settings()
