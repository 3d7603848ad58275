import os
import logging
from typing import List, Optional

from pydantic import BaseModel, Field
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Variables the API cannot start without
REQUIRED_ENV_VARS = ["JWT_SECRET"]


class Settings(BaseModel):
    """Runtime configuration read from the environment."""
    jwt_secret: str
    jwt_expires_hours: int = Field(default=24, ge=1)
    apify_api_token: Optional[str] = None
    apify_base_url: str = "https://api.apify.com/v2"
    apify_request_timeout: float = Field(default=30.0, gt=0)
    twitter_trends_actor_id: Optional[str] = None
    trend_poll_attempts: int = Field(default=30, ge=1)
    trend_poll_interval: float = Field(default=2.0, ge=0)
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash-exp"
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"]
    )
    port: int = 3001


def load_settings() -> Settings:
    """
    Load settings from the process environment (and a .env file if present).

    Raises:
        EnvironmentError: If a required variable is missing.
    """
    load_dotenv()

    missing_vars = [var for var in REQUIRED_ENV_VARS if not os.getenv(var)]
    if missing_vars:
        raise EnvironmentError(f"Missing required environment variables: {', '.join(missing_vars)}")

    values = {
        "jwt_secret": os.environ["JWT_SECRET"],
        "apify_api_token": os.getenv("APIFY_API_TOKEN") or None,
        "gemini_api_key": os.getenv("GEMINI_API_KEY") or None,
    }

    # Optional overrides, validated by the model
    optional = {
        "jwt_expires_hours": "JWT_EXPIRES_HOURS",
        "apify_base_url": "APIFY_BASE_URL",
        "apify_request_timeout": "APIFY_REQUEST_TIMEOUT",
        "twitter_trends_actor_id": "TWITTER_TRENDS_ACTOR_ID",
        "trend_poll_attempts": "TREND_POLL_ATTEMPTS",
        "trend_poll_interval": "TREND_POLL_INTERVAL",
        "gemini_model": "GEMINI_MODEL",
        "port": "PORT",
    }
    for field, var in optional.items():
        value = os.getenv(var)
        if value:
            values[field] = value

    cors_origins = os.getenv("CORS_ORIGINS")
    if cors_origins:
        values["cors_origins"] = [origin.strip() for origin in cors_origins.split(",") if origin.strip()]

    settings = Settings(**values)
    logger.info("JWT_SECRET loaded successfully")
    return settings
