from pathlib import Path

import pytest

from config import Config

ENV_KEYS = (
    "DB_PATH", "FEED_BATCH_SIZE", "FEED_TIMEOUT_SECONDS", "POSTING_HOURS",
    "CONTENT_GENERATOR", "OPENAI_API_KEY", "ENABLE_LOGFIRE", "LOG_LEVEL",
    "LOG_FORMAT", "CLEANUP_HOUR", "MIN_INGEST_SCORE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    config = Config.load()
    assert config.db_path == Path("curator.db")
    assert config.feed_batch_size == 10
    assert config.feed_refresh_minutes == 30
    assert config.feed_timeout_seconds == 10.0
    assert config.min_ingest_score == 0.2
    assert config.min_generation_score == 0.5
    assert config.posting_hours == (9, 12, 15, 18)
    assert config.cleanup_hour == 3
    assert config.validate() is None


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("DB_PATH", "/tmp/other.db")
    monkeypatch.setenv("FEED_BATCH_SIZE", "25")
    monkeypatch.setenv("POSTING_HOURS", "8, 20")
    monkeypatch.setenv("ENABLE_LOGFIRE", "yes")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = Config.load()
    assert config.db_path == Path("/tmp/other.db")
    assert config.feed_batch_size == 25
    assert config.posting_hours == (8, 20)
    assert config.enable_logfire is True
    assert config.log_level == "DEBUG"


def test_invalid_integer_raises(monkeypatch):
    monkeypatch.setenv("FEED_BATCH_SIZE", "ten")
    with pytest.raises(ValueError, match="FEED_BATCH_SIZE"):
        Config.load()


def test_validate_rejects_bad_values(monkeypatch):
    monkeypatch.setenv("CLEANUP_HOUR", "24")
    assert "CLEANUP_HOUR" in Config.load().validate()

    monkeypatch.setenv("CLEANUP_HOUR", "3")
    monkeypatch.setenv("POSTING_HOURS", "9,25")
    assert "POSTING_HOURS" in Config.load().validate()


def test_ai_mode_requires_key(monkeypatch):
    monkeypatch.setenv("CONTENT_GENERATOR", "ai")
    assert "OPENAI_API_KEY" in Config.load().validate()

    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    config = Config.load()
    assert config.validate() is None
    assert config.ai_enabled


def test_template_mode_disables_ai(monkeypatch):
    monkeypatch.setenv("CONTENT_GENERATOR", "template")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    assert not Config.load().ai_enabled
