from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://habits:habits@db:5432/habits"
    APP_ENV: str = "development"
    DB_POOL_PRE_PING: bool = True

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://myapp.com,https://api.myapp.com"
    CORS_ORIGINS: str = "*"

    # "json" for one-line JSON records, anything else for plain text.
    LOG_FORMAT: str = "json"
    LOG_LEVEL: str = "INFO"

    # Python weekday numbering: 0 = Monday ... 6 = Sunday.
    WEEK_STARTS_ON: int = 0

    DEFAULT_WEEKLY_TARGET: int = 7
    DEFAULT_MONTHLY_TARGET: int = 30
    # Applied to PERCENTAGE / POINTS habits saved without a threshold.
    DEFAULT_COMPLETION_THRESHOLD: int = 70

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
