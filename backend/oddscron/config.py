"""
backend/oddscron/config.py

Purpose:
    Central settings loading for the cron server. One Settings instance is
    built at import time; components take it as an explicit argument so tests
    can pass their own.

Dependencies:
    - pydantic-settings
    - pathlib
"""

from pathlib import Path

from pydantic_settings import BaseSettings

# Prefer backend/.env, fallback to project-root .env.
_BACKEND_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"
_ROOT_ENV_FILE = Path(__file__).resolve().parent.parent.parent / ".env"


class Settings(BaseSettings):
    PORT: int = 8080

    # Settlement endpoint
    SITE_URL: str = ""
    SETTLE_SHARED_SECRET: str = ""
    SETTLE_PATH: str = "/api/settle-game"
    SETTLE_CRON_MINUTES: int = 3
    SETTLE_JITTER_MAX_SECONDS: float = 15.0

    # The Odds API
    ODDS_API_KEY: str = ""
    ODDS_FETCH_SECRET: str = ""  # Empty = manual odds trigger is open
    THEODDSAPI_BASE_URL: str = "https://api.the-odds-api.com/v4"
    THEODDSAPI_RATE_LIMIT_RPM: int = 30  # 0 disables the provider bucket
    ODDS_SPORT_KEY: str = "icehockey_nhl"
    ODDS_SPORT_PREFIX: str = "nhl"
    ODDS_REGIONS: str = "us,eu"
    ODDS_FORMAT: str = "decimal"
    ODDS_REQUEST_TIMEOUT_SECONDS: float = 30.0
    ODDS_EVENT_DELAY_SECONDS: float = 1.0
    ODDS_CACHE_COLLECTION: str = "odds_cache"

    # Document store (base64 or raw JSON credential, MONGO_URI as fallback)
    FIREBASE_SERVICE_ACCOUNT_BASE64: str = ""
    MONGO_URI: str = ""
    MONGO_DB: str = "oddscron"

    SCHEDULER_ENABLED: bool = True

    model_config = {
        "env_file": (str(_BACKEND_ENV_FILE), str(_ROOT_ENV_FILE)),
        "extra": "ignore",
    }

    @property
    def settlement_configured(self) -> bool:
        return bool(self.SITE_URL and self.SETTLE_SHARED_SECRET)


settings = Settings()
