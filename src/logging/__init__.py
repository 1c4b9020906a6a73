"""Structured logging for the price hunter service.

Provides structured events for:
- Searches (per-source status, cache hits, latency)
- Source adapter fetches
- Oracle calls and their fallbacks
- Cache operations and API requests

Console logging is always on; rotating file logging is controlled by
``LOG_TO_FILE`` / ``LOG_DIR``. Production uses JSON lines.
"""

import logging
import os
import sys
from contextvars import ContextVar
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import structlog

# Request context for correlating logs
_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


class EventCategory(str, Enum):
    """Categories of logged events."""
    SEARCH = "search"
    SCRAPING = "scraping"
    ORACLE = "oracle"
    CACHE = "cache"
    SYSTEM = "system"


class LogConfig:
    """Logging configuration from environment variables."""

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json" if ENVIRONMENT == "production" else "text")

    LOG_TO_FILE: bool = os.getenv("LOG_TO_FILE", "false").lower() == "true"
    LOG_DIR: Path = Path(os.getenv("LOG_DIR", "logs"))
    LOG_FILE_MAX_BYTES: int = int(os.getenv("LOG_FILE_MAX_BYTES", 10 * 1024 * 1024))  # 10MB
    LOG_FILE_BACKUP_COUNT: int = int(os.getenv("LOG_FILE_BACKUP_COUNT", 5))


def setup_file_logging() -> Optional[logging.Handler]:
    """Set up rotating file logging, if enabled."""
    if not LogConfig.LOG_TO_FILE:
        return None

    LogConfig.LOG_DIR.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        LogConfig.LOG_DIR / "pricehunter.log",
        maxBytes=LogConfig.LOG_FILE_MAX_BYTES,
        backupCount=LogConfig.LOG_FILE_BACKUP_COUNT,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.setLevel(getattr(logging, LogConfig.LOG_LEVEL))
    return handler


def configure_logging() -> None:
    """Configure stdlib handlers and structlog processors."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, LogConfig.LOG_LEVEL))
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, LogConfig.LOG_LEVEL))
    root_logger.addHandler(console_handler)

    file_handler = setup_file_logging()
    if file_handler:
        root_logger.addHandler(file_handler)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        add_request_context,
        add_environment_context,
    ]

    if LogConfig.LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.get_logger(__name__).info(
        "logging_configured",
        environment=LogConfig.ENVIRONMENT,
        log_level=LogConfig.LOG_LEVEL,
        log_format=LogConfig.LOG_FORMAT,
        file_logging=LogConfig.LOG_TO_FILE,
    )


def add_request_context(logger, method_name, event_dict):
    """Add the current request id to log events."""
    request_id = _request_id.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def add_environment_context(logger, method_name, event_dict):
    """Add environment info to log events."""
    event_dict["env"] = LogConfig.ENVIRONMENT
    return event_dict


def set_request_context(request_id: Optional[str] = None) -> None:
    """Set request context for correlation."""
    if request_id:
        _request_id.set(request_id)


def clear_request_context() -> None:
    """Clear request context."""
    _request_id.set(None)


logger = structlog.get_logger(__name__)


def log_search(
    query: str,
    results_count: int,
    sources: dict[str, bool],
    duration_ms: float,
    cached: bool = False,
    cache_key: Optional[str] = None,
):
    """Log a completed search.

    Args:
        query: Raw user query
        results_count: Number of ranked results returned
        sources: Adapter name -> ok flag
        duration_ms: End-to-end duration in milliseconds
        cached: Whether the result was served from cache
        cache_key: Result cache key
    """
    logger.info(
        "search",
        category=EventCategory.SEARCH.value,
        query=query,
        results_count=results_count,
        sources=sources,
        failed_sources=[name for name, ok in sources.items() if not ok],
        duration_ms=duration_ms,
        cached=cached,
        cache_key=cache_key,
    )


def log_adapter_fetch(
    source: str,
    url: Optional[str],
    success: bool,
    duration_ms: float,
    items_found: int = 0,
    error: Optional[str] = None,
):
    """Log one source adapter fetch."""
    level = "info" if success else "warning"
    getattr(logger, level)(
        "adapter_fetch",
        category=EventCategory.SCRAPING.value,
        source=source,
        url=url[:100] if url else None,
        success=success,
        duration_ms=duration_ms,
        items_found=items_found,
        error=error,
    )


def log_oracle_call(
    oracle: str,
    success: bool,
    duration_ms: float,
    error: Optional[str] = None,
):
    """Log an oracle call; failures mean the fallback was used."""
    level = "info" if success else "warning"
    getattr(logger, level)(
        "oracle_call",
        category=EventCategory.ORACLE.value,
        oracle=oracle,
        success=success,
        fallback=not success,
        duration_ms=duration_ms,
        error=error,
    )


def log_cache_operation(
    operation: str,  # "hit", "miss", "expired", "put"
    key: str,
    age_seconds: Optional[int] = None,
    hit_rate: Optional[float] = None,
):
    """Log a result cache operation."""
    logger.debug(
        "cache_operation",
        category=EventCategory.CACHE.value,
        operation=operation,
        key=key,
        age_seconds=age_seconds,
        hit_rate=hit_rate,
    )


def log_api_request(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    user_agent: Optional[str] = None,
    error: Optional[str] = None,
):
    """Log an API request."""
    level = "info" if status_code < 400 else "warning" if status_code < 500 else "error"
    getattr(logger, level)(
        "api_request",
        category=EventCategory.SYSTEM.value,
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=duration_ms,
        user_agent=user_agent[:100] if user_agent else None,
        error=error,
    )
