"""
Environment validation utilities.

Ensures the backend fails fast on misconfiguration while
remaining bypassable for tests via SKIP_ENV_VALIDATION.
"""

import os
from typing import Optional, Iterable
from urllib.parse import urlparse

from aistudio.core.config import settings


class EnvValidationError(RuntimeError):
    """Raised when environment validation fails."""


def _is_valid_db_url(url: str) -> bool:
    """Basic DATABASE_URL validation using urlparse (sqlite paths have no host)."""
    parsed = urlparse(url)
    if parsed.scheme.startswith("sqlite"):
        return True
    return bool(parsed.scheme and parsed.netloc)


def _is_valid_redis_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in {"redis", "rediss", "unix"}


def _require(vars_required: Iterable[str], source: object) -> None:
    for var in vars_required:
        if not getattr(source, var, None):
            raise EnvValidationError(f"{var} is required in production")


def validate_env(env: Optional[str] = None, settings_obj=None) -> bool:
    """Validate environment configuration.

    Args:
        env: Override environment name (defaults to settings.ENV)
        settings_obj: Override settings object (defaults to aistudio.core.config.settings)

    Returns:
        True if validation passes.

    Raises:
        EnvValidationError when a rule is violated.
    """
    if os.getenv("SKIP_ENV_VALIDATION") == "1":
        return True

    cfg = settings_obj or settings
    mode = (env or getattr(cfg, "ENV", "development") or "development").lower()
    db_url = getattr(cfg, "DATABASE_URL", None)
    test_db_url = getattr(cfg, "TEST_DATABASE_URL", None)
    redis_url = getattr(cfg, "REDIS_URL", None)

    if db_url and not _is_valid_db_url(db_url):
        raise EnvValidationError("DATABASE_URL must be a valid URL (e.g. sqlite:///./data/aistudio.db)")

    if redis_url and not _is_valid_redis_url(redis_url):
        raise EnvValidationError("REDIS_URL must use the redis://, rediss:// or unix:// scheme")

    if mode == "production":
        if test_db_url:
            raise EnvValidationError("TEST_DATABASE_URL must not be set in production")
        # Usage counters are shared across workers
        _require(["REDIS_URL"], cfg)
        # Checkout without webhook verification never records payment status
        if getattr(cfg, "STRIPE_SECRET_KEY", None):
            _require(["STRIPE_WEBHOOK_SECRET"], cfg)
        if not str(getattr(cfg, "BASE_URL", "")).startswith("https://"):
            raise EnvValidationError("BASE_URL must be https in production")
    else:
        # Prevent accidental use of test database outside test mode
        if mode != "test" and test_db_url:
            raise EnvValidationError("TEST_DATABASE_URL is only allowed in test mode")

    return True
