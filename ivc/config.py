"""Application settings."""

from __future__ import annotations

import json
from functools import cached_property
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration entrypoint for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True

    # Site
    site_name: str = "IVC Accounting"
    site_url: str = Field(
        default="https://www.ivcaccounting.co.uk",
        validation_alias=AliasChoices("SITE_URL", "NEXT_PUBLIC_SITE_URL"),
    )
    site_description: str = (
        "Expert chartered accountants serving Essex businesses. Specializing in "
        "tax planning, business growth, and financial strategy."
    )
    allowed_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Observability
    log_level: str = "INFO"

    # Metrics endpoint authentication
    metrics_username: str = "prometheus"
    metrics_password: str | None = None

    # Database
    database_url: str = Field(
        default="sqlite:///./data/ivc.db",
        validation_alias=AliasChoices("DATABASE_URL"),
    )
    async_database_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ASYNC_DATABASE_URL"),
    )
    db_echo: bool = Field(
        default=False,
        validation_alias=AliasChoices("DB_ECHO", "SQL_ECHO"),
    )

    # Security
    secret_key: str = "dev-secret"
    jwt_lifetime_seconds: int = 60 * 60
    auth_cookie_name: str = "ivc-auth"
    admin_username: str = "admin@ivcaccounting.co.uk"
    admin_password: str = "change-me"

    # RSS ingestion
    rss_user_agent: str = "Mozilla/5.0 (compatible; IVC-RSS-Reader/1.0)"
    rss_fetch_timeout: float = 15.0
    rss_auto_import_limit: int = 5
    rss_bulk_batch_size: int = 10
    rss_bulk_batch_delay: float = 1.0

    # AI providers
    openai_api_key: str | None = None
    anthropic_api_key: str | None = None
    perplexity_api_key: str | None = None
    grok_api_key: str | None = None
    openrouter_api_key: str | None = None
    ai_request_timeout: float = 60.0
    ai_default_temperature: float = 0.7
    ai_default_max_tokens: int = 2000

    # Social aggregator
    ayrshare_api_key: str | None = None
    ayrshare_base_url: str = "https://api.ayrshare.com/api"
    social_request_timeout: float = 30.0

    # Analytics (rendered into page templates only)
    google_tag_manager_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GTM_ID", "NEXT_PUBLIC_GTM_ID"),
    )

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_allowed_origins(cls, value: str | list[str] | None) -> list[str]:
        """Normalize ALLOWED_ORIGINS env input into a list."""
        if isinstance(value, list):
            return value
        if isinstance(value, str):
            raw = value.strip()
            if not raw:
                return []
            if raw.startswith("["):
                try:
                    parsed = json.loads(raw)
                    if isinstance(parsed, list):
                        return parsed
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in raw.split(",") if item.strip()]
        return []

    @property
    def is_production(self) -> bool:
        """Return True when running in production."""
        return self.environment == "production"

    @property
    def cors_origins(self) -> list[str]:
        """Expose allowed CORS origins for middleware wiring."""
        return self.allowed_origins

    @property
    def ai_api_keys(self) -> dict[str, str | None]:
        """Provider id to configured API key."""
        return {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "perplexity": self.perplexity_api_key,
            "grok": self.grok_api_key,
            "openrouter": self.openrouter_api_key,
        }

    @cached_property
    def resolved_database_url(self) -> str:
        """Return the primary sync SQLAlchemy URL."""
        return self.database_url

    @cached_property
    def resolved_async_database_url(self) -> str:
        """Return the async SQLAlchemy URL derived from the sync configuration."""
        if self.async_database_url:
            return self.async_database_url
        base_url = self.resolved_database_url
        if base_url.startswith("sqlite:///"):
            return base_url.replace("sqlite:///", "sqlite+aiosqlite:///")
        return base_url


settings = Settings()
