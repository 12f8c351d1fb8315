"""
Application Configuration Module

Centralizes all configuration using environment variables with Pydantic Settings.
The settings object is built once at startup, frozen, and handed explicitly to
every component (database, session store, image storage, dispatcher).

WhatsApp delivery is selected purely by what is configured:
    - All four TWILIO_* values set: orders are pushed through Twilio
    - WHATSAPP_NUMBER set: guests get a wa.me link to send the order themselves
    - Both set: wa.me link is offered only if the Twilio send fails

Usage:
    from cocktail_menu.core.config import get_settings

    settings = get_settings()
    if settings.twilio_enabled:
        ...
"""

import logging
import re
import sys
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ADMIN_PASSWORD = "change-me"
DEFAULT_SESSION_SECRET = "dev-secret-change-me"


def normalize_whatsapp_number(value: Optional[str]) -> str:
    """Keep only the digits of a phone number (wa.me wants no '+')."""
    return re.sub(r"[^\d]", "", value or "")


def normalize_whatsapp_address(value: Optional[str]) -> str:
    """
    Convert a phone number into a Twilio WhatsApp address.

    Examples:
        >>> normalize_whatsapp_address("+40 712 345 678")
        'whatsapp:+40 712 345 678'
        >>> normalize_whatsapp_address("0040712345678")
        'whatsapp:+0040712345678'
        >>> normalize_whatsapp_address("whatsapp:+14155238886")
        'whatsapp:+14155238886'
    """
    raw = (value or "").strip()
    if not raw:
        return ""
    if raw.lower().startswith("whatsapp:"):
        return raw
    if raw.startswith("+"):
        return f"whatsapp:{raw}"
    digits = normalize_whatsapp_number(raw)
    return f"whatsapp:+{digits}" if digits else ""


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or a .env file.
    Secrets (admin password, session secret, Twilio token) should never be
    committed to version control.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # ==========================================================================
    # APPLICATION
    # ==========================================================================

    app_name: str = Field(
        default="Cocktail Menu",
        description="Application display name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    port: int = Field(
        default=3000,
        description="API server port"
    )

    # ==========================================================================
    # STORAGE
    # ==========================================================================

    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding the SQLite database"
    )
    database_url: Optional[str] = Field(
        default=None,
        description="Explicit SQLAlchemy async URL (overrides DATA_DIR)"
    )
    database_echo: bool = Field(
        default=False,
        description="Log every SQL statement"
    )
    upload_dir: Path = Field(
        default=Path("uploads"),
        description="Directory holding uploaded cocktail images"
    )
    max_upload_bytes: int = Field(
        default=5 * 1024 * 1024,
        description="Maximum accepted image size"
    )
    require_instructions: bool = Field(
        default=False,
        description="Reject cocktails submitted without instructions"
    )

    # ==========================================================================
    # ADMIN SESSION
    # ==========================================================================

    session_secret: str = Field(
        default=DEFAULT_SESSION_SECRET,
        description="Key used to sign the session cookie"
    )
    session_ttl_seconds: int = Field(
        default=24 * 60 * 60,
        description="Session lifetime, counted from login"
    )
    admin_password: str = Field(
        default=DEFAULT_ADMIN_PASSWORD,
        description="Password for the admin dashboard"
    )

    # ==========================================================================
    # PUBLIC URL
    # ==========================================================================

    public_base_url: str = Field(
        default="",
        description="Public origin used in the QR code (derived from the request when empty)"
    )

    # ==========================================================================
    # WHATSAPP
    # ==========================================================================

    whatsapp_number: str = Field(
        default="",
        description="Staff number for manual wa.me links"
    )
    twilio_account_sid: str = Field(
        default="",
        description="Twilio Account SID"
    )
    twilio_auth_token: str = Field(
        default="",
        description="Twilio Auth Token"
    )
    twilio_whatsapp_from: str = Field(
        default="",
        description="Twilio-verified WhatsApp sender"
    )
    twilio_whatsapp_to: str = Field(
        default="",
        description="WhatsApp recipient for order notifications"
    )

    # ==========================================================================
    # VALIDATORS
    # ==========================================================================

    @field_validator(
        "twilio_account_sid",
        "twilio_auth_token",
        mode="before",
    )
    @classmethod
    def strip_value(cls, v: Optional[str]) -> str:
        return (v or "").strip()

    @field_validator("admin_password", mode="before")
    @classmethod
    def validate_admin_password(cls, v: Optional[str]) -> str:
        """Blank falls back to the default, an empty password is never accepted."""
        return (v or "").strip() or DEFAULT_ADMIN_PASSWORD

    @field_validator("session_secret", mode="before")
    @classmethod
    def validate_session_secret(cls, v: Optional[str]) -> str:
        return (v or "").strip() or DEFAULT_SESSION_SECRET

    @field_validator("whatsapp_number", mode="before")
    @classmethod
    def validate_whatsapp_number(cls, v: Optional[str]) -> str:
        """Reduce to digits, wa.me rejects anything else."""
        return normalize_whatsapp_number(v)

    @field_validator("twilio_whatsapp_from", "twilio_whatsapp_to", mode="before")
    @classmethod
    def validate_whatsapp_address(cls, v: Optional[str]) -> str:
        return normalize_whatsapp_address(v)

    @field_validator("public_base_url", mode="before")
    @classmethod
    def validate_public_base_url(cls, v: Optional[str]) -> str:
        """Add a scheme when missing and drop trailing slashes."""
        raw = (v or "").strip()
        if not raw:
            return ""
        if not re.match(r"^https?://", raw, re.IGNORECASE):
            raw = f"https://{raw}"
        return raw.rstrip("/")

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def database_url_resolved(self) -> str:
        """SQLAlchemy URL, defaulting to a SQLite file inside DATA_DIR."""
        if self.database_url:
            return self.database_url
        return f"sqlite+aiosqlite:///{(self.data_dir / 'cocktails.db').resolve()}"

    @property
    def twilio_enabled(self) -> bool:
        """Direct delivery needs all four Twilio values."""
        return bool(
            self.twilio_account_sid
            and self.twilio_auth_token
            and self.twilio_whatsapp_from
            and self.twilio_whatsapp_to
        )

    @property
    def whatsapp_configured(self) -> bool:
        """True when guests get any kind of WhatsApp delivery."""
        return bool(self.whatsapp_number) or self.twilio_enabled


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Configured application settings
    """
    return Settings()


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def setup_logging(settings: Optional[Settings] = None, level: int = logging.INFO) -> logging.Logger:
    """
    Configure application-wide logging.

    Args:
        settings: Settings to read the debug flag from (cached settings if omitted)
        level: Logging level used when debug is off

    Returns:
        Configured application logger
    """
    settings = settings or get_settings()

    if settings.debug:
        level = logging.DEBUG

    log_format = "%(asctime)s │ %(levelname)-8s │ %(name)-25s │ %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("twilio.http_client").setLevel(logging.WARNING)

    return logging.getLogger("cocktail_menu")
