import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Load env vars
load_dotenv()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class Settings:
    stripe_secret_key: Optional[str]
    stripe_webhook_secret: Optional[str]
    frontend_url: str
    notification_email: Optional[str]
    resend_api_key: Optional[str]
    discord_webhook_url: Optional[str]
    database_url: str
    port: int
    log_level: str


def _optional(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


def get_settings() -> Settings:
    """Read settings from the environment. Called per request so tests can monkeypatch."""
    return Settings(
        stripe_secret_key=_optional("STRIPE_SECRET_KEY"),
        stripe_webhook_secret=_optional("STRIPE_WEBHOOK_SECRET"),
        frontend_url=os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/"),
        notification_email=_optional("NOTIFICATION_EMAIL"),
        resend_api_key=_optional("RESEND_API_KEY"),
        discord_webhook_url=_optional("DISCORD_WEBHOOK_URL"),
        database_url=os.getenv("DATABASE_URL", "sqlite:///storefront.db"),
        port=int(os.getenv("PORT", "3000")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level, logging.INFO))

    # Outbound notification calls are noisy at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
