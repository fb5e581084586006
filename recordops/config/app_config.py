# recordops/config/app_config.py
from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env from repo root even when the cwd varies.
# Existing env wins so container/CI secrets are not overridden.
load_dotenv(find_dotenv(usecwd=True), override=False)


class Settings(BaseSettings):
    VERSION: str = "0.2.0"
    CORS_ALLOW_ORIGINS: str = "*"  # CSV

    # ---- store ----
    STORE_BACKEND: str = "memory"  # memory | supabase
    SUPABASE_URL: Optional[str] = None
    SUPABASE_SERVICE_ROLE: Optional[str] = None
    SUPABASE_KEY: Optional[str] = None
    STORE_MAX_BATCH_OPS: int = Field(default=500, ge=1)
    STORE_PRIMARY_KEY: str = "id"
    STORE_PAGE_SIZE: int = Field(default=1000, ge=1)

    # ---- bulk delete defaults ----
    BULK_DELETE_BATCH_SIZE: int = Field(default=500, ge=1)
    BULK_DELETE_MAX_RETRIES: int = Field(default=3, ge=1)
    BULK_DELETE_RETRY_DELAY: float = Field(default=1.0, ge=0)
    BULK_DELETE_INTER_BATCH_DELAY: float = Field(default=0.1, ge=0)
    BULK_DELETE_TABLE_ALLOWLIST: str = ""  # CSV; empty = any collection

    # ---- logging ----
    LOG_JSON: bool = False
    LOG_REQUESTS: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def supabase_key(self) -> Optional[str]:
        # service-role preferred
        return self.SUPABASE_SERVICE_ROLE or self.SUPABASE_KEY

    @property
    def table_allowlist(self) -> List[str]:
        return _csv(self.BULK_DELETE_TABLE_ALLOWLIST)

    @property
    def cors_origins(self) -> List[str]:
        return _csv(self.CORS_ALLOW_ORIGINS)


def _csv(raw: str) -> List[str]:
    return [s.strip() for s in (raw or "").split(",") if s.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
