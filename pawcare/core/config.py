from datetime import time
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root so it loads regardless of cwd
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str
    database_ssl: bool = False

    # JWT (tokens are issued elsewhere; we only decode them)
    secret_key: str
    algorithm: str = "HS256"

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Slot/appointment business rules
    slot_duration_minutes: int = 30
    business_start_hour: int = 9
    business_end_hour: int = 17  # exclusive, so last slot starts at 16:30
    booking_window_days: int = 30
    booking_channel: str = "web"

    # Booking write rate limit, per client IP
    booking_rate_limit: int = 100
    booking_rate_limit_window_seconds: int = 60

    # Booking wizard sessions
    wizard_reset_delay_seconds: int = 3
    booking_session_ttl_minutes: int = 60
    session_cleanup_interval_seconds: int = 5 * 60

    # Env
    env: str = "development"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def business_start(self) -> time:
        return time(self.business_start_hour, 0)

    @property
    def business_end(self) -> time:
        return time(self.business_end_hour, 0)


settings = Settings()
