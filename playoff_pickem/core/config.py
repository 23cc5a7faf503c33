from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[2]
DATA_DIR = BASE_DIR / "data"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=(BASE_DIR / ".env"), env_prefix="PICKEMS_", case_sensitive=False)

    # App
    APP_NAME: str = "Playoff Pickem"
    ENV: Literal["development", "production", "test"] = Field(default="development")
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str | None = Field(default=None, description="Also write logs to this rotating file")
    LOG_SQL: bool = Field(default=False, description="Log every SQL statement")

    # Database
    DATABASE_URL: str = Field(default=f"sqlite:///{(DATA_DIR / 'pickem.db').as_posix()}")

    # Timezone for job schedules
    TIMEZONE: str = Field(default="local")

    # Periodic jobs
    ENABLE_SCHEDULER: bool = True
    LOCK_INTERVAL_SECONDS: int = Field(default=60, description="Lock-check cadence")
    SCORE_SYNC_INTERVAL_SECONDS: int = Field(default=120, description="Feed sync + scoring cadence")
    STATS_INTERVAL_SECONDS: int = Field(default=300, description="UserStat refresh cadence")

    # Score feed
    # Provider key names are defined in playoff_pickem.services.feed.factory
    FEED_PROVIDER: str = Field(default="espn")
    FEED_API_BASE: str | None = Field(default=None)
    FEED_TIMEOUT_SECONDS: float = Field(default=10.0, description="Per-request timeout for the score feed")
    FEED_REQUEST_DELAY_SECONDS: float = Field(default=0.5, description="Pause between sequential feed requests")
    SYNC_LOOKAHEAD_HOURS: int = Field(default=12, description="Sync games kicking off within this many hours")

    # Admin API; empty disables the admin routes
    ADMIN_TOKEN: str | None = Field(default=None)


@lru_cache
def get_settings() -> Settings:
    settings = Settings()  # type: ignore[call-arg]

    if settings.DATABASE_URL.startswith("sqlite:///") and DATA_DIR.as_posix() in settings.DATABASE_URL:
        DATA_DIR.mkdir(parents=True, exist_ok=True)

    return settings
