from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Player Ledger API"
    storage_backend: Literal["memory", "sql"] = "memory"
    database_url: str = "sqlite:///player_ledger.db"
    log_level: str = "INFO"

    initial_balance: int = Field(default=1500, ge=0)
    max_name_length: int = Field(default=100, ge=1)
    history_retention: int = Field(default=50, ge=1)
    history_default_limit: int = Field(default=20, ge=1)

    cors_origins: list[str] = ["*"]
    host: str = "0.0.0.0"
    port: int = 8080

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PLAYER_LEDGER_",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
