from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    default_tz: str = "UTC"  # Day boundaries for streak, histogram and windows
    analytics_api_key: str | None = None
    log_level: str = "INFO"

    # Scoped windows
    week_start: int = 0  # 0 = Monday … 6 = Sunday

    # Streak walk stops after this many consecutive days
    max_streak_days: int = 365

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
