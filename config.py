"""Minimal configuration for the launch cache service."""

import os

from dotenv import load_dotenv

from error_handling import ConfigurationError, ErrorCategory, ErrorInfo, ErrorSeverity

# Load environment variables
load_dotenv()


def _int_setting(name: str, default: int, minimum: int) -> int:
    """Read an integer setting from the environment, enforcing a lower bound."""
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigurationError(
            ErrorInfo(
                category=ErrorCategory.CONFIGURATION,
                severity=ErrorSeverity.FATAL,
                message=f"{name} must be an integer, got {raw!r}",
                details={"setting": name, "value": raw},
                recoverable=False,
            ),
            e,
        )
    if value < minimum:
        raise ConfigurationError(
            ErrorInfo(
                category=ErrorCategory.CONFIGURATION,
                severity=ErrorSeverity.FATAL,
                message=f"{name} must be >= {minimum}, got {value}",
                details={"setting": name, "value": value},
                recoverable=False,
            )
        )
    return value


class Config:
    """Configuration class with attribute access."""

    def __init__(self):
        self.log_level = os.environ.get("LAUNCH_CACHE_LOG_LEVEL", "DEBUG")
        # Use container path if running in container, local path otherwise
        if os.path.exists("/app"):
            default_db_path = "/app/data/launches.db"
            default_log_file = "/app/logs/launch_cache.log"
        else:
            default_db_path = "launches.db"
            default_log_file = "launch_cache.log"
        self.db_path = os.environ.get("LAUNCH_CACHE_DB_PATH", default_db_path)
        self.log_file = os.environ.get("LAUNCH_CACHE_LOG_FILE", default_log_file)
        self.max_log_size = 10 * 1024 * 1024  # 10MB

        self.api_url = os.environ.get(
            "LAUNCH_API_URL",
            "https://lldev.thespacedevs.com/2.3.0/launches/upcoming/",
        )
        self.user_agent = "LaunchCache/1.0"
        self.cache_key = "upcoming_launches"
        self.cache_ttl_minutes = _int_setting("CACHE_TTL_MINUTES", 30, 1)
        # Upper bound on rows pulled from upstream or storage per call
        self.max_records = _int_setting("MAX_API_LIMIT", 100, 1)
        self.request_timeout = _int_setting("UPSTREAM_TIMEOUT_SECONDS", 30, 1)
        self.max_retries = _int_setting("UPSTREAM_MAX_RETRIES", 0, 0)
        self.retry_backoff_factor = 1.0

        self.default_page_size = 10
        self.inspector_preview = 5


# Global config instance
config = Config()
