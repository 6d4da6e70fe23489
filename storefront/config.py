from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration sourced from environment variables (and `.env`)."""

    database_url: Optional[str] = None
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    guest_session_cookie: str = "guest_session"
    auth_session_cookie: str = "session_token"
    guest_session_ttl_days: int = 7

    free_shipping_threshold: Decimal = Decimal("100")
    shipping_flat_rate: Decimal = Decimal("10")
    tax_rate: Decimal = Decimal("0.08")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


def load_settings() -> Settings:
    """Provide a reusable settings singleton."""

    return Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Console logging for the service; actions log through module loggers."""

    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


settings = load_settings()
