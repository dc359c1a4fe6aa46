"""Application configuration."""

import os
from uuid import UUID

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str | None = None
    supabase_service_key: str | None = None
    api_tokens: str | None = None
    api_base_url: str = "http://localhost:8000"
    api_access_token: str | None = None
    api_user_id: str | None = None
    timezone: str = "UTC"
    day_cutoff_hour: int = 5
    day_cutoff_minute: int = 30
    remote_timeout_seconds: float = 10.0
    store_mirror_path: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_api_tokens(raw: str | None) -> dict[str, UUID]:
    """Parse `token:user_id` pairs from env."""
    if raw is None:
        return {}
    tokens: dict[str, UUID] = {}
    for chunk in raw.split(","):
        value = chunk.strip()
        if not value or ":" not in value:
            continue
        token, _, raw_user_id = value.partition(":")
        try:
            user_id = UUID(raw_user_id.strip())
        except ValueError:
            continue
        if token.strip():
            tokens[token.strip()] = user_id
    return tokens
