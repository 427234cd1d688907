import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Model vendors
    OPENAI_API_KEY: Optional[str] = None
    XAI_API_KEY: Optional[str] = None
    GEMINI_API_KEY: Optional[str] = None
    LUMA_API_KEY: Optional[str] = None
    FREEIMAGE_API_KEY: Optional[str] = None

    # Vendors behind proxy routes (reported by /api/health/vendors only)
    ELEVENLABS_API_KEY: Optional[str] = None
    SEOPROAI_API_KEY: Optional[str] = None
    DAYTONA_API_KEY: Optional[str] = None

    # Stripe
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None

    # Storage
    DATABASE_URL: Optional[str] = "sqlite:///./data/aistudio.db"
    TEST_DATABASE_URL: Optional[str] = None
    REDIS_URL: Optional[str] = None  # unset = in-process store
    AGENTS_DIR: str = "data/agents"

    # App URLs
    BASE_URL: str = "http://localhost:3000"
    CORS_ORIGINS: str = "http://localhost:3000"  # comma-separated

    # Anonymous session cookie
    SESSION_COOKIE_NAME: str = "anon_session"
    SESSION_COOKIE_MAX_AGE: int = 60 * 60 * 24 * 365

    # Image generation
    OPENAI_IMAGE_MODEL: str = "gpt-image-1.5"
    OPENAI_IMAGE_SIZE: str = "1536x1024"

    # Chat agents (xAI, OpenAI-compatible API)
    XAI_BASE_URL: str = "https://api.x.ai/v1"
    XAI_DEFAULT_MODEL: str = "grok-4-1-fast"

    # Motion prediction
    GEMINI_VISION_MODEL: str = "gemini-2.0-flash-exp"

    # Video synthesis
    LUMA_BASE_URL: str = "https://api.lumalabs.ai/dream-machine/v1"
    LUMA_MODEL: str = "ray-2"
    LUMA_RESOLUTION: str = "720p"
    LUMA_POLL_INTERVAL_SECONDS: float = 5.0
    LUMA_MAX_POLL_ATTEMPTS: int = 60

    # Keyframe hosting
    IMAGE_HOST_URL: str = "https://freeimage.host/api/1/upload"

    # Frame extraction
    FFMPEG_BINARY: str = "ffmpeg"
    FFMPEG_TIMEOUT_SECONDS: float = 30.0

    # Video jobs
    VIDEO_JOB_TTL_SECONDS: int = 3600
    VIDEO_JOB_SWEEP_SECONDS: int = 300
    VIDEO_JOB_TIMEOUT_SECONDS: float = 300.0

    # Feeds
    FEED_CACHE_SECONDS: int = 300
    FEED_ITEMS_PER_SOURCE: int = 10
    FEED_FETCH_TIMEOUT_SECONDS: float = 10.0

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate vendor configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    A missing key only disables the routes that need it.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("aistudio")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    required_keys = [
        "OPENAI_API_KEY",
        "XAI_API_KEY",
        "GEMINI_API_KEY",
        "LUMA_API_KEY",
        "STRIPE_SECRET_KEY",
    ]

    missing = [key for key in required_keys if not getattr(cfg, key, None)]
    if missing:
        message = f"Missing vendor configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
