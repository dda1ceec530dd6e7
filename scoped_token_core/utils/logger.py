"""
Console logging for the token services.

This module provides:
1. ContextAwareLogger, which renders ``extra`` as pipe-delimited key=value
   pairs so they survive host runtimes that replace formatters
2. CorrelationIdFilter, which stamps the current correlation id on records
"""

import logging
import sys
from typing import Optional, Union

from ..config import get_config

_function_logger = None


class ContextAwareLogger:
    """
    Logger wrapper that formats extra attributes in message while preserving them.

    This ensures extras appear in console output even when Azure Functions
    overrides the formatters.
    """

    def __init__(self, logger):
        """Initialize with an existing logger."""
        self.logger = logger

    def _log_with_formatted_extra(self, level, msg, **kwargs):
        """
        Log with extra data formatted into the message.

        Args:
            level: Logging level method to use
            msg: Log message
            **kwargs: Additional arguments including 'extra' and 'exc_info'
        """
        extra = kwargs.pop("extra", None) or {}
        exc_info = kwargs.pop("exc_info", None)

        if extra:
            extra_str = " | ".join([f"{k}={v}" for k, v in extra.items()])
            full_msg = f"{msg} | {extra_str}"
        else:
            full_msg = msg

        log_method = getattr(self.logger, level)
        log_method(full_msg, extra=extra, exc_info=exc_info)

    def set_level(self, level):
        """Set the logging level of the underlying logger."""
        self.logger.setLevel(level)

    def info(self, msg, **kwargs):
        """Log at INFO level with formatted extra."""
        self._log_with_formatted_extra("info", msg, **kwargs)

    def error(self, msg, **kwargs):
        """Log at ERROR level with formatted extra."""
        self._log_with_formatted_extra("error", msg, **kwargs)

    def warning(self, msg, **kwargs):
        """Log at WARNING level with formatted extra."""
        self._log_with_formatted_extra("warning", msg, **kwargs)

    def debug(self, msg, **kwargs):
        """Log at DEBUG level with formatted extra."""
        self._log_with_formatted_extra("debug", msg, **kwargs)

    def exception(self, msg, **kwargs):
        """Log exception with formatted extra."""
        kwargs.setdefault("exc_info", True)
        self._log_with_formatted_extra("error", msg, **kwargs)


class CorrelationIdFilter(logging.Filter):
    """
    Logging filter that adds the request correlation id to log records.
    """

    def filter(self, record):
        # Lazy import to avoid circular dependency
        from ..exceptions import get_correlation_id

        correlation_id = get_correlation_id()
        if correlation_id and not hasattr(record, "correlation_id"):
            record.correlation_id = correlation_id

        return True


def configure_logging(
    function_name: str,
    log_level: Optional[Union[int, str]] = None,
) -> "ContextAwareLogger":
    """
    Configure console logging for a function app or worker.

    Args:
        function_name: Name of the function
        log_level: Logging level (default: from config.logging.level)

    Returns:
        The configured logger wrapped with ContextAwareLogger
    """
    global _function_logger

    app_config = get_config()

    if log_level is None:
        log_level = app_config.logging.level

    if isinstance(log_level, str):
        log_level = getattr(logging, log_level.upper(), logging.INFO)

    logger_name = f"function.{function_name}"
    logger = logging.getLogger(logger_name)
    logger.setLevel(log_level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    console_handler.addFilter(CorrelationIdFilter())

    logger.addHandler(console_handler)

    wrapped_logger = ContextAwareLogger(logger)

    wrapped_logger.info(
        "Function logger configured",
        extra={"function_name": function_name, "log_level": logging.getLevelName(log_level)},
    )
    _function_logger = wrapped_logger
    return wrapped_logger


def get_logger(
    log_level: Optional[Union[int, str]] = None,
) -> "ContextAwareLogger":
    """
    Get the function logger.

    Args:
        log_level: Optional log level to set

    Returns:
        Logger instance
    """
    if _function_logger is not None:
        return _function_logger

    logger = logging.getLogger("scoped_token_core")

    if log_level is None:
        log_level = get_config().logging.level

    if isinstance(log_level, str):
        log_level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(log_level)

    return ContextAwareLogger(logger)


def token_preview(token_id: Optional[str]) -> str:
    """Shortened token id safe to write to logs."""
    from ..constants import Limits

    if not token_id:
        return ""
    return token_id[: Limits.TOKEN_PREVIEW_CHARS] + "..."
