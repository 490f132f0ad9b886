from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SUC_", env_file=".env", extra="ignore")

    # Registration defaults, used when Factory.add() leaves an option unset
    default_cache: bool = Field(default=True, validation_alias="SUC_DEFAULT_CACHE")
    default_max_batch_size: int | None = Field(
        default=None, ge=1, validation_alias="SUC_MAX_BATCH_SIZE"
    )

    # Observability
    enable_tracing: bool = Field(default=True, validation_alias="ENABLE_TRACING")
    enable_metrics: bool = Field(default=True, validation_alias="ENABLE_METRICS")
    # Defaults for configure_logging()
    log_level: str = "INFO"
    log_json: bool = Field(default=False, validation_alias="SUC_LOG_JSON")


settings = Settings()
