"""Application configuration."""

from datetime import time
from decimal import Decimal
from os import getenv

from pydantic import BaseModel


def _split_csv(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


class Settings(BaseModel):
    """Runtime settings for the application."""

    app_name: str = "lunchbot"
    app_env: str = getenv("APP_ENV", "dev")
    debug: bool = getenv("DEBUG", "0") == "1"
    database_url: str = getenv("DATABASE_URL", "sqlite:///./lunchbot.db")
    jwt_secret_key: str = getenv("JWT_SECRET_KEY", "dev-only-change-me-to-a-long-random-secret")
    jwt_algorithm: str = getenv("JWT_ALGORITHM", "HS256")
    jwt_expire_minutes: int = int(getenv("JWT_EXPIRE_MINUTES", "60"))
    admin_username: str = getenv("ADMIN_USERNAME", "")
    admin_password: str = getenv("ADMIN_PASSWORD", "")
    operating_timezone: str = getenv("OPERATING_TIMEZONE", "Asia/Taipei")
    default_deadline_time: time = time.fromisoformat(getenv("DEFAULT_DEADLINE_TIME", "09:00"))
    default_combo_surcharge: Decimal = Decimal(getenv("DEFAULT_COMBO_SURCHARGE", "15"))
    combo_drinks: tuple[str, ...] = _split_csv(getenv("COMBO_DRINKS", "black tea,green tea,milk tea"))
    line_channel_access_token: str = getenv("LINE_CHANNEL_ACCESS_TOKEN", "")
    line_channel_secret: str = getenv("LINE_CHANNEL_SECRET", "")
    line_api_base_url: str = getenv("LINE_API_BASE_URL", "https://api.line.me")
    settlement_secret: str = getenv("SETTLEMENT_SECRET", "")
    notification_timeout_seconds: float = float(getenv("NOTIFICATION_TIMEOUT_SECONDS", "10"))


settings: Settings = Settings()
