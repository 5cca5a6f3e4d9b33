from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./fittrack.db"
    default_tz: str = "UTC"  # calendar-day boundary for history and attendance keys
    log_level: str = "INFO"

    # Weight history
    weight_history_retention_days: int = 90  # samples older than today - N days are dropped on write

    # Avatar upload
    avatar_max_bytes: int = 2 * 1024 * 1024  # raw payload limit before encoding

    # Transient "saved" acknowledgment
    save_ack_seconds: float = 2.0

    # Key-value capacity, counted in characters of keys + values (browser-style quota)
    storage_quota: int = 5 * 1024 * 1024

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
