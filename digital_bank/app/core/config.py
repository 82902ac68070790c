from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Digital Bank API"
    database_url: str = "sqlite:///digital_bank.db"
    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]

    secret_key: str = Field(default="change-me-in-production", min_length=8)
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7

    signup_cooldown_minutes: int = Field(default=15, ge=0)
    usd_to_pen_rate: Decimal = Field(default=Decimal("3.75"), gt=0)

    bootstrap_admin_email: Optional[str] = None
    bootstrap_admin_password: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="BANK_",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
