"""Tests for environment-driven settings."""

from config import Settings


def test_env_file_configured():
    assert Settings.model_config["env_file"] == ".env"


def test_environment_overrides_defaults(monkeypatch):
    monkeypatch.setenv("PACK_OPEN_RATE_LIMIT_MS", "250")
    monkeypatch.setenv("DEFAULT_PACK_ID", "weekly_v2")

    settings = Settings()

    assert settings.PACK_OPEN_RATE_LIMIT_MS == 250
    assert settings.DEFAULT_PACK_ID == "weekly_v2"
