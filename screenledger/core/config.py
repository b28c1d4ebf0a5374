from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://screenledger:screenledger@db:5432/screenledger"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    CORS_ORIGINS: str = "*"

    # IANA zone used for day/week boundaries. Weeks start on Monday.
    TIMEZONE: str = "UTC"

    WEEKLY_CREDITS: int = 7
    PUZZLE_EXTENSION_MINUTES: int = 15
    EXTRA_TIME_MINUTES: int = 15
    MAX_EXTENSIONS_PER_DAY: int = 10
    ACTIVITY_HISTORY_DAYS: int = 14
    COMMIT_RETRIES: int = 3

    # JSON document shared with the enforcement process. Unset = no sharing.
    SHARED_STATE_PATH: Optional[str] = None

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
