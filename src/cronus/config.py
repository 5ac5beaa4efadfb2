from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CRONUS_", env_file=".env", extra="ignore")

    # Store backend: memory, redis, sql
    store_backend: str = "redis"

    # Redis
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")
    redis_key_prefix: str = "cronus:registry:"

    # SQL (any SQLAlchemy URL; SQLite works for single-host setups)
    database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

    # Registry engine
    max_attempts: int = Field(default=5, ge=1)
    liveness_checker: str = "procfs"

    # Observability
    enable_metrics: bool = True
    log_level: str = "INFO"
    log_json: bool = False


settings = Settings()
