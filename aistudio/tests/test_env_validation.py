"""Tests for environment and vendor configuration checks."""

from types import SimpleNamespace

import pytest

from aistudio.core.config import Settings, validate_config
from aistudio.core.validation import EnvValidationError, validate_env


@pytest.fixture(autouse=True)
def enforce_validation(monkeypatch):
    monkeypatch.delenv("SKIP_ENV_VALIDATION", raising=False)


def make_settings(**overrides):
    defaults = dict(
        ENV="development",
        DATABASE_URL="sqlite:///./data/aistudio.db",
        TEST_DATABASE_URL=None,
        REDIS_URL=None,
        STRIPE_SECRET_KEY=None,
        STRIPE_WEBHOOK_SECRET=None,
        BASE_URL="http://localhost:3000",
    )
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


def production(**overrides):
    values = dict(
        ENV="production",
        DATABASE_URL="postgresql://user:pass@db:5432/aistudio",
        REDIS_URL="redis://cache:6379/0",
        BASE_URL="https://studio.example",
    )
    values.update(overrides)
    return make_settings(**values)


def test_development_defaults_pass():
    assert validate_env(settings_obj=make_settings()) is True


def test_valid_production_config_passes():
    assert validate_env(settings_obj=production(STRIPE_SECRET_KEY="sk", STRIPE_WEBHOOK_SECRET="whsec")) is True


def test_production_requires_redis():
    with pytest.raises(EnvValidationError):
        validate_env(settings_obj=production(REDIS_URL=None))


def test_production_stripe_needs_webhook_secret():
    with pytest.raises(EnvValidationError):
        validate_env(settings_obj=production(STRIPE_SECRET_KEY="sk"))


def test_production_requires_https_base_url():
    with pytest.raises(EnvValidationError):
        validate_env(settings_obj=production(BASE_URL="http://studio.example"))


def test_invalid_urls_fail():
    with pytest.raises(EnvValidationError):
        validate_env(settings_obj=make_settings(DATABASE_URL="not-a-url"))
    with pytest.raises(EnvValidationError):
        validate_env(settings_obj=make_settings(REDIS_URL="http://cache:6379"))


def test_test_database_url_forbidden_outside_test_mode():
    with pytest.raises(EnvValidationError):
        validate_env(settings_obj=make_settings(TEST_DATABASE_URL="sqlite:///tmp/t.db"))
    assert validate_env(settings_obj=make_settings(ENV="test", TEST_DATABASE_URL="sqlite:///tmp/t.db")) is True


def test_skip_flag(monkeypatch):
    monkeypatch.setenv("SKIP_ENV_VALIDATION", "1")
    assert validate_env(settings_obj=production(REDIS_URL=None)) is True


def test_validate_config_warns_without_values(caplog):
    cfg = Settings(OPENAI_API_KEY="sk-secret-openai", XAI_API_KEY=None, GEMINI_API_KEY=None, LUMA_API_KEY=None, STRIPE_SECRET_KEY=None)
    with caplog.at_level("WARNING", logger="aistudio"):
        assert validate_config(strict=False, settings_obj=cfg) is True
    assert "XAI_API_KEY" in caplog.text
    assert "sk-secret-openai" not in caplog.text


def test_validate_config_strict_raises():
    cfg = Settings(XAI_API_KEY=None)
    with pytest.raises(RuntimeError):
        validate_config(strict=True, settings_obj=cfg)


def test_settings_defaults():
    cfg = Settings()
    assert cfg.VIDEO_JOB_TTL_SECONDS == 3600
    assert cfg.XAI_BASE_URL == "https://api.x.ai/v1"
    assert cfg.SESSION_COOKIE_NAME == "anon_session"
