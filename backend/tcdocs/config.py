"""TCDocs configuration — Pydantic BaseSettings loaded from .env."""

from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings for the document preview backend."""

    app_name: str = "TCDocs"
    debug: bool = True
    environment: str = "development"
    log_level: str = "INFO"

    # Network
    host: str = "127.0.0.1"
    port: int = 8000
    api_prefix: str = "/api"
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    # Remote training-center API
    api_base_url: str = "https://api.seai.co"
    api_version_path: str = "/api/v1"
    api_token: str = ""  # Used only when the caller sends no bearer token
    request_timeout_seconds: float = 30.0

    # File content cache (in-memory, process lifetime)
    content_cache_ttl_seconds: float = 300.0  # 5 minutes

    # Open preview viewers not touched for this long are evicted
    viewer_idle_timeout_seconds: float = 1800.0

    uvicorn_workers: int = 1

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        env_prefix="TCDOCS_",
        extra="ignore",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, value: list[str] | str) -> list[str]:
        if isinstance(value, str) and not value.startswith("["):
            return [o.strip() for o in value.split(",") if o.strip()]
        if isinstance(value, list):
            return value
        return ["http://localhost:3000"]

    @model_validator(mode="after")
    def _normalize_urls(self) -> "Settings":
        """Strip trailing slashes so paths can be appended verbatim."""
        self.api_base_url = self.api_base_url.rstrip("/")
        version = self.api_version_path.strip("/")
        self.api_version_path = f"/{version}" if version else ""
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
