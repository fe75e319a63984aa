"""Burnnote configuration — loaded from environment / .env file."""

from datetime import timedelta
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="BURNNOTE_", extra="ignore")

    env: str = "development"
    database_url: str = "sqlite+aiosqlite:///./burnnote.db"
    log_level: str = "INFO"

    # Server (python -m burnnote)
    host: str = "127.0.0.1"
    port: int = 9000

    # Secret lifetime and size
    secret_ttl_seconds: float = 3600
    max_payload_bytes: int = 1024 * 1024

    # delete: consumed rows are removed by the consume itself
    # mark: consumed rows are flagged and kept until the next sweep
    burn_mode: Literal["delete", "mark"] = "delete"
    id_generation_attempts: int = 3

    # Periodic cleanup of expired / consumed rows
    sweep_enabled: bool = True
    sweep_on_startup: bool = True
    sweep_interval_seconds: float = 15 * 60

    cors_origins: list[str] = ["http://localhost:5173"]  # Vite dev server

    @property
    def secret_ttl(self) -> timedelta:
        return timedelta(seconds=self.secret_ttl_seconds)


settings = Settings()
