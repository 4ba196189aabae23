"""
Application configuration.

Settings are read once at startup (``.env`` is honoured via python-dotenv) and
handed to the app through ``create_app``; nothing reads the environment after
that.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

GMAIL_SEND_URL = "https://gmail.googleapis.com/gmail/v1/users/me/messages/send"

_DEFAULT_MAX_UPLOAD_FILES = 10
_DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10 MB

_TRANSPORTS = ("smtp", "gmail")
_SMTP_SECURITY = ("starttls", "tls", "none")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    """Everything the services need to know about their environment."""

    data_dir: Path = Path("public")
    port: int = 8000

    mail_transport: str = "smtp"
    sender_email: str = ""
    sender_name: str = ""

    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_security: str = "starttls"

    gmail_api_url: str = GMAIL_SEND_URL
    transport_timeout: float = 30.0

    max_upload_files: int = _DEFAULT_MAX_UPLOAD_FILES
    max_upload_bytes: int = _DEFAULT_MAX_UPLOAD_BYTES

    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])

    def __post_init__(self) -> None:
        if self.mail_transport not in _TRANSPORTS:
            raise ValueError(
                f"Unknown mail transport {self.mail_transport!r}. "
                f"Supported transports: {list(_TRANSPORTS)}"
            )
        if self.smtp_security not in _SMTP_SECURITY:
            raise ValueError(
                f"Unknown SMTP security mode {self.smtp_security!r}. "
                f"Supported modes: {list(_SMTP_SECURITY)}"
            )
        if self.transport_timeout <= 0:
            raise ValueError("TRANSPORT_TIMEOUT must be greater than 0")

    # Derived paths -----------------------------------------------------------

    @property
    def attachments_dir(self) -> Path:
        return self.data_dir / "files"

    @property
    def staging_dir(self) -> Path:
        return self.data_dir / "uploads"

    @property
    def subjects_file(self) -> Path:
        return self.data_dir / "templates" / "subjects.txt"

    @property
    def messages_file(self) -> Path:
        return self.data_dir / "templates" / "messages.txt"

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from environment variables (after loading ``.env``).

        Raises:
            ValueError: if a numeric variable does not parse or a mode is unknown.
        """
        load_dotenv()

        return cls(
            data_dir=Path(os.getenv("DATA_DIR", "public")),
            port=_env_int("PORT", 8000),
            mail_transport=os.getenv("MAIL_TRANSPORT", "smtp").strip().lower(),
            sender_email=os.getenv("SENDER_EMAIL", "").strip(),
            sender_name=os.getenv("SENDER_NAME", "").strip(),
            smtp_host=os.getenv("SMTP_HOST", "localhost").strip(),
            smtp_port=_env_int("SMTP_PORT", 587),
            smtp_username=os.getenv("SMTP_USERNAME") or None,
            smtp_password=os.getenv("SMTP_PASSWORD") or None,
            smtp_security=os.getenv("SMTP_SECURITY", "starttls").strip().lower(),
            gmail_api_url=os.getenv("GMAIL_API_URL", GMAIL_SEND_URL).strip(),
            transport_timeout=_env_float("TRANSPORT_TIMEOUT", 30.0),
            max_upload_files=_env_int("MAX_UPLOAD_FILES", _DEFAULT_MAX_UPLOAD_FILES),
            max_upload_bytes=_env_int("MAX_UPLOAD_BYTES", _DEFAULT_MAX_UPLOAD_BYTES),
            cors_origins=_env_list("CORS_ORIGINS", ["http://localhost:3000"]),
        )
