"""
Error handling framework for the launch cache.

Provides the exception hierarchy used across the cache layers, structured
error information for logging, and classification of low-level exceptions
(requests, sqlite3) into cache error categories.
"""

import sqlite3
import traceback
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

import requests

from logging_config import get_logger

logger = get_logger()


class ErrorSeverity(Enum):
    """Error severity levels for classification and handling."""
    LOW = "low"          # Non-critical errors, can continue operation
    MEDIUM = "medium"    # Degraded response, stale data served
    HIGH = "high"        # Request fails, nothing to serve
    FATAL = "fatal"      # Misconfiguration, must stop


class ErrorCategory(Enum):
    """Error categories for better classification and handling."""
    NETWORK = "network"              # HTTP requests, connectivity issues
    DATABASE = "database"            # SQLite operations, schema issues
    VALIDATION = "validation"        # Malformed upstream payloads
    CONFIGURATION = "configuration"  # Missing settings, invalid values
    EXTERNAL = "external"            # No usable data from any source


@dataclass
class ErrorInfo:
    """Structured error information container."""
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    details: Optional[Dict[str, Any]] = None
    timestamp: Optional[datetime] = None
    recoverable: bool = True

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc)


class LaunchCacheError(Exception):
    """Base exception class for all launch cache errors."""

    def __init__(self, error_info: ErrorInfo, original_exception: Optional[Exception] = None):
        self.error_info = error_info
        self.original_exception = original_exception
        super().__init__(error_info.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            'category': self.error_info.category.value,
            'severity': self.error_info.severity.value,
            'message': self.error_info.message,
            'details': self.error_info.details,
            'timestamp': self.error_info.timestamp.isoformat(),
            'recoverable': self.error_info.recoverable,
            'original_exception': str(self.original_exception) if self.original_exception else None
        }


class UpstreamError(LaunchCacheError):
    """Upstream fetch failed (transport, HTTP status or response shape)."""
    pass


class StoreWriteError(LaunchCacheError):
    """Batch upsert or metadata write failed and was rolled back."""
    pass


class NoDataAvailableError(LaunchCacheError):
    """Upstream failed and the record store has nothing to fall back on."""
    pass


class ConfigurationError(LaunchCacheError):
    """Configuration-related errors (missing settings, invalid values)."""
    pass


# Exception mapping for automatic classification
EXCEPTION_MAPPING = {
    requests.Timeout: ErrorCategory.NETWORK,
    requests.ConnectionError: ErrorCategory.NETWORK,
    requests.HTTPError: ErrorCategory.NETWORK,
    requests.RequestException: ErrorCategory.NETWORK,
    ConnectionError: ErrorCategory.NETWORK,
    sqlite3.Error: ErrorCategory.DATABASE,
    ValueError: ErrorCategory.VALIDATION,
    TypeError: ErrorCategory.VALIDATION,
    KeyError: ErrorCategory.VALIDATION,
}


def classify_exception(exception: Exception, **details: Any) -> ErrorInfo:
    """Classify a low-level exception into structured error info."""
    category = ErrorCategory.EXTERNAL
    for exc_type, cat in EXCEPTION_MAPPING.items():
        if isinstance(exception, exc_type):
            category = cat
            break

    if category == ErrorCategory.NETWORK:
        severity = ErrorSeverity.MEDIUM
        response = getattr(exception, "response", None)
        if response is not None and response.status_code >= 500:
            severity = ErrorSeverity.HIGH
    elif category == ErrorCategory.DATABASE:
        severity = ErrorSeverity.HIGH
    else:
        severity = ErrorSeverity.MEDIUM

    info_details = {
        'exception_type': type(exception).__name__,
        'traceback': traceback.format_exc(),
    }
    info_details.update(details)

    return ErrorInfo(
        category=category,
        severity=severity,
        message=str(exception),
        details=info_details,
    )


def log_error(error: LaunchCacheError, context: str = "") -> None:
    """Log a cache error with a level matching its severity."""
    info = error.error_info
    log_data = {
        'context': context,
        'category': info.category.value,
        'severity': info.severity.value,
        'message': info.message,
        'recoverable': info.recoverable,
    }
    if info.details:
        log_data.update(
            {k: v for k, v in info.details.items() if k != 'traceback'}
        )

    if info.severity in (ErrorSeverity.FATAL, ErrorSeverity.HIGH):
        logger.error(f"ERROR_HANDLER: {log_data}")
    elif info.severity == ErrorSeverity.MEDIUM:
        logger.warning(f"ERROR_HANDLER: {log_data}")
    else:
        logger.debug(f"ERROR_HANDLER: {log_data}")
