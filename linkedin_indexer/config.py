"""Application configuration using pydantic-settings."""

import json
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ScraperSettings(BaseSettings):
    """Content source (browser) settings."""

    model_config = SettingsConfigDict(
        env_prefix="SCRAPER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    headless: bool = Field(default=True, description="Run browser in headless mode")
    timeout_ms: int = Field(default=30000, description="Playwright default timeout in ms")
    max_results: int = Field(default=10, description="Max candidate links kept per search")
    max_retries: int = Field(default=2, description="Max retry attempts for page navigation")
    retry_delay: float = Field(default=2.0, description="Initial delay between retries in seconds")
    li_at_cookie: str = Field(default="", description="LinkedIn li_at session cookie (optional)")
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
    )


class DatabaseSettings(BaseSettings):
    """Database settings."""

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    path: str = Field(default="data/linkedin.db", description="SQLite database path")


class FetchSettings(BaseSettings):
    """Fetch cycle, quota and scheduling settings."""

    model_config = SettingsConfigDict(
        env_prefix="FETCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_requests_per_day: int = Field(
        default=50,
        description="Daily budget of non-rate-limited fetch attempts (UTC day)",
    )
    interval_hours: int = Field(default=6, description="Hours between scheduled fetch cycles")
    topics_config_path: str = Field(
        default="config/topics.json",
        description="Path to the region/subregion/topic JSON configuration",
    )
    delay_base_seconds: float = Field(
        default=5.0,
        description="Base inter-task delay; actual delay is base + random * base",
    )
    source: str = Field(default="linkedin", description="Registered content source name")
    enable_scheduler: bool = Field(default=True, description="Start the cron scheduler with the API")

    @field_validator("max_requests_per_day")
    @classmethod
    def validate_daily_limit(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_requests_per_day must be >= 0")
        return v

    @field_validator("interval_hours")
    @classmethod
    def validate_interval(cls, v: int) -> int:
        """Interval is used as a cron hour step, so it must fit inside a day."""
        if not 1 <= v <= 23:
            raise ValueError("interval_hours must be between 1 and 23")
        return v

    @field_validator("delay_base_seconds")
    @classmethod
    def validate_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("delay_base_seconds must be >= 0")
        return v


class ApiSettings(BaseSettings):
    """HTTP API settings."""

    model_config = SettingsConfigDict(
        env_prefix="API_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3100)
    cors_origins_json: str = Field(
        default='["*"]',
        description="Allowed CORS origins as JSON array string",
    )

    @field_validator("cors_origins_json")
    @classmethod
    def validate_origins(cls, v: str) -> str:
        """Validate that cors_origins_json is a JSON array."""
        try:
            parsed = json.loads(v)
            if not isinstance(parsed, list):
                raise ValueError("cors_origins_json must be a JSON array")
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON for CORS origins: {e}")
        return v

    def get_cors_origins(self) -> list[str]:
        return json.loads(self.cors_origins_json)


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = Field(default="INFO", description="Root log level, read by the CLI entry point")

    @property
    def scraper(self) -> ScraperSettings:
        return ScraperSettings()

    @property
    def database(self) -> DatabaseSettings:
        return DatabaseSettings()

    @property
    def fetch(self) -> FetchSettings:
        return FetchSettings()

    @property
    def api(self) -> ApiSettings:
        return ApiSettings()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def reload_settings() -> Settings:
    """Reload settings (clear cache and return new instance).

    Call this when .env file is updated to pick up new values.
    """
    get_settings.cache_clear()
    return get_settings()
