"""
backend/config.py

Application configuration via Pydantic Settings.
All values can be overridden with environment variables or a .env file.

Quick start - create a .env file in your project root:
    STORE_BACKEND=sqlite
    DB_PATH=data/authwatch.db
    PRIVATE_PREFIXES=192.,10.,172.16.
    COUNTING_WINDOW_SECONDS=3600
"""

from __future__ import annotations

import json
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _split_list(v):
    if isinstance(v, str):
        v = v.strip()
        if v.startswith("["):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        return [item.strip() for item in v.split(",") if item.strip()]
    return v


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Storage
    STORE_BACKEND: str = "memory"   # "memory" | "sqlite"
    DB_PATH: str = "data/authwatch.db"

    # Geo classification - sources starting with one of these are "Internal"
    PRIVATE_PREFIXES: Annotated[list[str], NoDecode] = ["192.", "10."]

    # Detection
    FAILURE_THRESHOLD: int = 3
    HIGH_SEVERITY_THRESHOLD: int = 6
    COUNTING_WINDOW_SECONDS: int | None = None   # None = all-time history
    LOCK_SHARDS: int = 64

    # Operator view
    RECENT_EVENTS_LIMIT: int = 50

    # Admin gate for the operator endpoints
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: str = "admin"
    ADMIN_TOKEN: str = "soc-admin"

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 3000
    CORS_ORIGINS: Annotated[list[str], NoDecode] = ["*"]

    # Logging
    LOG_LEVEL: str = "INFO"

    @field_validator("PRIVATE_PREFIXES", "CORS_ORIGINS", mode="before")
    @classmethod
    def parse_list(cls, v):
        return _split_list(v)

    @field_validator("COUNTING_WINDOW_SECONDS")
    @classmethod
    def check_window(cls, v: int | None) -> int | None:
        if v is not None and v <= 0:
            raise ValueError(f"COUNTING_WINDOW_SECONDS must be > 0 or unset, got {v}")
        return v

    @field_validator("STORE_BACKEND")
    @classmethod
    def check_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in ("memory", "sqlite"):
            raise ValueError(f"STORE_BACKEND must be 'memory' or 'sqlite', got {v!r}")
        return v


settings = Settings()
