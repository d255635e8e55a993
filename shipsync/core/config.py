from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Environment mode: dev or prod
    ENV: Literal["dev", "prod"] = "dev"

    # Database
    DATABASE_URL: str

    # Logging
    LOG_LEVEL: str = "INFO"
    SLACK_WEBHOOK_URL: str | None = None

    # Upstream catalog API
    FLEETYARDS_API_BASE: str = "https://api.fleetyards.net/v1"

    # Ship sync scheduling
    SHIP_SYNC_CRON_SCHEDULE: str = "0 0 */2 * *"  # midnight every 2 days
    SHIP_SYNC_ENABLED: bool = True
    SHIP_SYNC_CATCHUP_HOURS: int = 72  # run on startup if the last sync is older than this

    # Fetch client tuning
    SHIP_SYNC_PAGE_SIZE: int = 200  # FleetYards perPage cap
    SHIP_SYNC_MAX_PAGES: int = 10
    SHIP_SYNC_MAX_RETRIES: int = 3
    SHIP_SYNC_PAGE_DELAY_SECONDS: float = 0.3
    SHIP_SYNC_RETRY_DELAY_SECONDS: float = 1.0
    SHIP_SYNC_RATE_LIMIT_WAIT_SECONDS: float = 5.0  # 429 without a usable Retry-After
    SHIP_SYNC_MAX_RETRY_AFTER_SECONDS: float = 60.0
    SHIP_SYNC_REQUEST_TIMEOUT_SECONDS: float = 15.0

    # Abort a run when the fetched count drops below this share of the previous run
    SHIP_SYNC_MIN_COUNT_RATIO: float = 0.8

    # Docs Configuration
    DOCS_ENABLED: bool | None = None  # Override docs setting (None = auto based on ENV)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",  # ignore unrelated keys in local .env
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENV == "prod"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENV == "dev"

    @property
    def debug_enabled(self) -> bool:
        """Debug mode is only enabled in development."""
        return self.is_development

    @property
    def effective_log_level(self) -> str:
        """Return appropriate log level based on environment."""
        if self.is_production:
            # In production, minimum INFO level (ignore DEBUG)
            return self.LOG_LEVEL if self.LOG_LEVEL.upper() != "DEBUG" else "INFO"
        return self.LOG_LEVEL

    @property
    def docs_enabled(self) -> bool:
        """Swagger/ReDoc docs enabled based on environment or override."""
        if self.DOCS_ENABLED is not None:
            return self.DOCS_ENABLED
        # Otherwise, docs available in dev, disabled in prod
        return self.is_development


settings = Settings()
