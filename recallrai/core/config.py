from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://api.recallrai.com"


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    api_key: Optional[str] = Field(default=None, alias="RECALLRAI_API_KEY")
    project_id: Optional[str] = Field(default=None, alias="RECALLRAI_PROJECT_ID")
    base_url: str = Field(default=DEFAULT_BASE_URL, alias="RECALLRAI_BASE_URL")
    timeout_sec: float = Field(default=30, gt=0, alias="RECALLRAI_TIMEOUT_SEC")
    log_level: str = Field(default="WARNING", alias="RECALLRAI_LOG_LEVEL")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached client settings."""

    return Settings()
