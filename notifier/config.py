from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from .event_models import CategoryConfig, EventCategory


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    SERVICE_PORT: int = 8080
    MAX_EVENT_SIZE: int = 65536
    LOG_JSON: bool = True
    LOG_LEVEL: str = "INFO"
    # Simulated processing latency per category
    EMAIL_DELAY_MS: int = Field(default=5000, ge=0)
    SMS_DELAY_MS: int = Field(default=3000, ge=0)
    PUSH_DELAY_MS: int = Field(default=2000, ge=0)
    FAILURE_RATE: float = Field(default=0.1, ge=0.0, le=1.0)
    # Callback delivery
    CALLBACK_TIMEOUT_MS: int = Field(default=5000, gt=0)
    CALLBACK_MAX_RETRIES: int = Field(default=3, ge=1)
    CALLBACK_BACKOFF_MS: int = Field(default=1000, ge=0)
    CALLBACK_WORKERS: int = Field(default=5, ge=1)
    # Shutdown
    SHUTDOWN_TIMEOUT_MS: int = Field(default=30000, ge=0)
    POLL_INTERVAL_MS: int = Field(default=1000, gt=0)

    def category_configs(self) -> dict[EventCategory, CategoryConfig]:
        """Map every category to its processing configuration."""
        return {
            EventCategory.EMAIL: CategoryConfig(delay_ms=self.EMAIL_DELAY_MS),
            EventCategory.SMS: CategoryConfig(delay_ms=self.SMS_DELAY_MS),
            EventCategory.PUSH: CategoryConfig(delay_ms=self.PUSH_DELAY_MS),
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
