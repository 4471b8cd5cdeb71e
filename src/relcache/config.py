from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="RELCACHE_", env_file=".env", extra="ignore")

    # Cache backend
    cache_backend: str = "memory"  # memory or redis
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")
    # Namespace prepended to every key by the Redis backend
    key_prefix: str = ""

    # Default lifetime of entities, collections and relations (30 minutes)
    default_ttl: int = Field(default=1800, ge=1)

    # Observability
    log_level: str = "INFO"
    log_json: bool = False
    enable_metrics: bool = True


settings = Settings()
