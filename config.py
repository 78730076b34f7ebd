"""Configuration management for the Curator ingestion service.

This module provides centralized configuration for all scheduler jobs.
All settings are loaded from environment variables with sensible defaults.

Environment Variables:
    Storage:
        DB_PATH: SQLite database file path

    Feed Ingestion:
        FEED_TIMEOUT_SECONDS: Hard timeout for a single feed fetch
        FEED_USER_AGENT: Client identifier sent with every feed request
        FEED_BATCH_SIZE: Maximum sources processed per feed tick
        FEED_REFRESH_MINUTES: Minimum age of last check before a source is due
        MIN_INGEST_SCORE: Relevance an article must exceed to be stored

    Post Generation:
        MIN_GENERATION_SCORE: Relevance an article needs to back a post
        POSTING_HOURS: Comma-separated UTC hours used for send times
        CONTENT_GENERATOR: 'auto', 'template' or 'ai'
        OPENAI_API_KEY: Enables the AI content generator
        CONTENT_MODEL: OpenAI chat model used for post text

    Publishing:
        PUBLISH_WEBHOOK_URL: Endpoint that receives due posts (job disabled if empty)

    Scheduling:
        FEED_INTERVAL_SECONDS: Cadence of the feed ingestion job
        POST_INTERVAL_SECONDS: Cadence of the post generation job
        PUBLISH_INTERVAL_SECONDS: Cadence of the publishing job
        CLEANUP_HOUR: UTC hour of the daily retention job
        SCHEDULER_POLL_SECONDS: How often the scheduler checks for due jobs

    Optional Features:
        ENABLE_LOGFIRE: Enable Logfire/OpenTelemetry tracing

    Logging:
        LOG_LEVEL: Logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_BACKUP_COUNT: Number of rotated log files to keep
        LOG_MAX_BYTES: Max log file size in bytes (0 = time-based rotation)
        LOG_FORMAT: Log format ('text' or 'json' for structured logging)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, TypeVar

T = TypeVar("T")


def _env(key: str, default: str = "") -> str:
    """Get string environment variable with optional default."""
    return os.environ.get(key, default)


def _env_parsed(key: str, default: T, parse: Callable[[str], T], kind: str) -> T:
    """Parse an environment variable, returning default when unset or empty.

    Raises:
        ValueError: If the value is set but parse rejects it
    """
    raw = os.environ.get(key)
    if not raw:
        return default
    try:
        return parse(raw)
    except ValueError:
        raise ValueError(f"Invalid {kind} for {key}: '{raw}'") from None


def _env_int(key: str, default: int) -> int:
    return _env_parsed(key, default, int, "integer")


def _env_float(key: str, default: float) -> float:
    return _env_parsed(key, default, float, "number")


def _parse_hours(raw: str) -> tuple[int, ...]:
    return tuple(int(part) for part in raw.split(",") if part.strip())


_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})


def _env_bool(key: str, default: bool = False) -> bool:
    """Boolean environment variable; unrecognized values give default."""
    raw = os.environ.get(key, "").strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    return default


DEFAULT_USER_AGENT = "NewsCurator/1.0 (RSS Reader)"
DEFAULT_POSTING_HOURS = (9, 12, 15, 18)


@dataclass
class Config:
    """Application configuration loaded from environment variables.

    Example:
        >>> config = Config.load()
        >>> if error := config.validate():
        ...     print(f"Config error: {error}")
    """

    # === Database ===
    db_path: Path = field(default_factory=lambda: Path("curator.db"))  # DB_PATH

    # === Feed Ingestion ===
    feed_timeout_seconds: float = 10.0  # FEED_TIMEOUT_SECONDS - Per-feed hard timeout
    feed_user_agent: str = DEFAULT_USER_AGENT  # FEED_USER_AGENT
    feed_batch_size: int = 10  # FEED_BATCH_SIZE - Sources per tick
    feed_refresh_minutes: int = 30  # FEED_REFRESH_MINUTES - Staleness before re-check
    min_ingest_score: float = 0.2  # MIN_INGEST_SCORE - Admission threshold

    # === Post Generation ===
    min_generation_score: float = 0.5  # MIN_GENERATION_SCORE - Eligibility threshold
    posting_hours: tuple[int, ...] = DEFAULT_POSTING_HOURS  # POSTING_HOURS
    content_generator: str = "auto"  # CONTENT_GENERATOR - auto | template | ai
    openai_api_key: str = ""  # OPENAI_API_KEY
    content_model: str = "gpt-4o-mini"  # CONTENT_MODEL

    # === Publishing ===
    publish_webhook_url: str = ""  # PUBLISH_WEBHOOK_URL

    # === Scheduling ===
    feed_interval_seconds: int = 1800  # FEED_INTERVAL_SECONDS - 30 minutes
    post_interval_seconds: int = 3600  # POST_INTERVAL_SECONDS - hourly
    publish_interval_seconds: int = 300  # PUBLISH_INTERVAL_SECONDS
    cleanup_hour: int = 3  # CLEANUP_HOUR - Daily retention run (UTC)
    scheduler_poll_seconds: int = 30  # SCHEDULER_POLL_SECONDS

    # === Output Directories ===
    log_dir: Path = field(default_factory=lambda: Path("log"))  # LOG_DIR

    # === Logging Configuration ===
    log_level: str = "INFO"  # LOG_LEVEL - DEBUG, INFO, WARNING, ERROR
    log_backup_count: int = 30  # LOG_BACKUP_COUNT - Number of rotated logs to keep
    log_max_bytes: int = 0  # LOG_MAX_BYTES - Max file size (0 = time-based rotation)
    log_format: str = "text"  # LOG_FORMAT - 'text' or 'json' for structured logging

    # === Optional: Observability ===
    # Requires: pip install logfire
    enable_logfire: bool = False  # ENABLE_LOGFIRE - Enable distributed tracing
    logfire_token: str = ""  # LOGFIRE_TOKEN - Authentication token

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls(
            db_path=Path(_env("DB_PATH", "curator.db")),
            feed_timeout_seconds=_env_float("FEED_TIMEOUT_SECONDS", 10.0),
            feed_user_agent=_env("FEED_USER_AGENT", DEFAULT_USER_AGENT),
            feed_batch_size=_env_int("FEED_BATCH_SIZE", 10),
            feed_refresh_minutes=_env_int("FEED_REFRESH_MINUTES", 30),
            min_ingest_score=_env_float("MIN_INGEST_SCORE", 0.2),
            min_generation_score=_env_float("MIN_GENERATION_SCORE", 0.5),
            posting_hours=_env_parsed("POSTING_HOURS", DEFAULT_POSTING_HOURS, _parse_hours, "hour list"),
            content_generator=_env("CONTENT_GENERATOR", "auto").lower(),
            openai_api_key=_env("OPENAI_API_KEY"),
            content_model=_env("CONTENT_MODEL", "gpt-4o-mini"),
            publish_webhook_url=_env("PUBLISH_WEBHOOK_URL"),
            feed_interval_seconds=_env_int("FEED_INTERVAL_SECONDS", 1800),
            post_interval_seconds=_env_int("POST_INTERVAL_SECONDS", 3600),
            publish_interval_seconds=_env_int("PUBLISH_INTERVAL_SECONDS", 300),
            cleanup_hour=_env_int("CLEANUP_HOUR", 3),
            scheduler_poll_seconds=_env_int("SCHEDULER_POLL_SECONDS", 30),
            log_dir=Path(_env("LOG_DIR", "log")),
            enable_logfire=_env_bool("ENABLE_LOGFIRE", False),
            logfire_token=_env("LOGFIRE_TOKEN"),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            log_backup_count=_env_int("LOG_BACKUP_COUNT", 30),
            log_max_bytes=_env_int("LOG_MAX_BYTES", 0),
            log_format=_env("LOG_FORMAT", "text").lower(),
        )

    def validate(self) -> str | None:
        """Validate configuration values.

        Returns:
            Error message string if invalid, None if valid.
        """
        if self.feed_timeout_seconds <= 0:
            return "FEED_TIMEOUT_SECONDS must be positive"
        if self.feed_batch_size <= 0:
            return "FEED_BATCH_SIZE must be positive"
        if self.feed_refresh_minutes < 0:
            return "FEED_REFRESH_MINUTES must be non-negative"
        if not 0.0 <= self.min_ingest_score <= 1.0:
            return "MIN_INGEST_SCORE must be between 0 and 1"
        if not 0.0 <= self.min_generation_score <= 1.0:
            return "MIN_GENERATION_SCORE must be between 0 and 1"
        if not self.posting_hours:
            return "POSTING_HOURS must list at least one hour"
        if any(not 0 <= hour <= 23 for hour in self.posting_hours):
            return "POSTING_HOURS entries must be between 0 and 23"
        if self.content_generator not in ("auto", "template", "ai"):
            return f"Invalid CONTENT_GENERATOR '{self.content_generator}' - must be auto, template, or ai"
        if self.content_generator == "ai" and not self.openai_api_key:
            return "OPENAI_API_KEY is required when CONTENT_GENERATOR=ai"
        for name, value in (
            ("FEED_INTERVAL_SECONDS", self.feed_interval_seconds),
            ("POST_INTERVAL_SECONDS", self.post_interval_seconds),
            ("PUBLISH_INTERVAL_SECONDS", self.publish_interval_seconds),
            ("SCHEDULER_POLL_SECONDS", self.scheduler_poll_seconds),
        ):
            if value <= 0:
                return f"{name} must be positive"
        if not 0 <= self.cleanup_hour <= 23:
            return "CLEANUP_HOUR must be between 0 and 23"
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return f"Invalid LOG_LEVEL '{self.log_level}' - must be DEBUG, INFO, WARNING, ERROR, or CRITICAL"
        if self.log_format not in ("text", "json"):
            return f"Invalid LOG_FORMAT '{self.log_format}' - must be 'text' or 'json'"
        if self.log_backup_count < 0:
            return "LOG_BACKUP_COUNT must be non-negative"
        if self.log_max_bytes < 0:
            return "LOG_MAX_BYTES must be non-negative"
        return None

    @property
    def ai_enabled(self) -> bool:
        """Whether the AI content generator should be tried first."""
        if self.content_generator == "template":
            return False
        return bool(self.openai_api_key)
