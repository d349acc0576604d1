"""Usage metering settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class UsageSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    USAGE_RETRY_QUEUE_SIZE: int = 1000
    USAGE_RECENT_LIMIT: int = 50
    USAGE_DEFAULT_WINDOW_DAYS: int = 30
