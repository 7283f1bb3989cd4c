"""Tests for settings validation."""

from accounts.config import Settings, get_settings


def test_defaults_are_valid():
    settings = Settings()
    settings.APP_ENV = "development"
    settings.RESET_TOKEN_TTL_HOURS = 24
    settings.TOKEN_BYTES = 32
    assert settings.validate() == []


def test_weak_bcrypt_in_production():
    settings = Settings()
    settings.APP_ENV = "production"
    settings.BCRYPT_ROUNDS = 4
    assert any("BCRYPT_ROUNDS" in w for w in settings.validate())


def test_non_positive_ttl():
    settings = Settings()
    settings.RESET_TOKEN_TTL_HOURS = 0
    assert any("RESET_TOKEN_TTL_HOURS" in w for w in settings.validate())


def test_short_tokens():
    settings = Settings()
    settings.TOKEN_BYTES = 8
    assert any("TOKEN_BYTES" in w for w in settings.validate())


def test_settings_cached():
    assert get_settings() is get_settings()
