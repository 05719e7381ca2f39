import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional


class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Persistence (unset => in-memory state for the session)
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None

    # AI content generation
    GROQ_API_KEY: Optional[str] = None
    AI_MODEL: str = "llama-3.1-8b-instant"
    AI_DAILY_QUOTA: int = 50

    # Calendar-day comparisons happen in this zone
    TIMEZONE: str = "UTC"
    LOCALE: str = "en"

    # Engine limits
    RIPPLE_FEED_LIMIT: int = 20
    MISSION_TTL_DAYS: int = 7

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate optional integrations.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("momentum")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    recommended_keys = [
        "DATABASE_URL",
        "GROQ_API_KEY",
    ]

    missing = [key for key in recommended_keys if not getattr(cfg, key, None)]
    if missing:
        message = f"Missing configuration (running with local fallbacks): {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
