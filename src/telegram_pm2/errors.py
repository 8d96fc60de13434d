"""Error types and logging utilities for the PM2 Telegram bot."""

import logging
from enum import Enum
from typing import Any, Optional

from pythonjsonlogger import jsonlogger


class TransportErrorKind(str, Enum):
    """Classification of a failed Telegram request."""

    BLOCKED = "blocked"  # recipient refuses messages from the bot (403)
    REJECTED = "rejected"  # any other refusal reported by the Bot API
    UNREACHABLE = "unreachable"  # Telegram could not be contacted


class TelegramError(Exception):
    """Base class for Telegram transport failures."""

    kind: TransportErrorKind = TransportErrorKind.REJECTED


class TelegramAPIError(TelegramError):
    """The Bot API answered a request with ``ok: false``."""

    def __init__(
        self,
        description: str,
        error_code: Optional[int] = None,
        retry_after: Optional[int] = None,
    ):
        super().__init__(f"Telegram API error: {description}")
        self.description = description
        self.error_code = error_code
        self.retry_after = retry_after
        self.kind = (
            TransportErrorKind.BLOCKED if error_code == 403 else TransportErrorKind.REJECTED
        )


class TelegramNetworkError(TelegramError):
    """Telegram could not be reached (connection failure or timeout)."""

    kind = TransportErrorKind.UNREACHABLE


class SupervisorError(Exception):
    """A PM2 operation failed."""

    def __init__(self, operation: str, reason: str):
        super().__init__(f"PM2 {operation} error: {reason}")
        self.operation = operation
        self.reason = reason


class SupervisorConnectionError(SupervisorError):
    """The PM2 daemon could not be reached at startup."""

    def __init__(self, reason: str):
        super().__init__("connect", reason)


def setup_logger(
    name: str = "telegram_pm2",
    level: str = "INFO",
    error_log_file: str = "",
) -> logging.Logger:
    """Set up and configure the package logger.

    Args:
        name: Logger name
        level: Console log level
        error_log_file: Optional path receiving ERROR records as JSON lines

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
    )
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if error_log_file:
        try:
            file_handler = logging.FileHandler(error_log_file, mode="a")
            file_handler.setLevel(logging.ERROR)
            json_formatter = jsonlogger.JsonFormatter(
                "%(asctime)s %(name)s %(levelname)s %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S%z",
            )
            file_handler.setFormatter(json_formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            logger.warning(f"Cannot write error log {error_log_file}: {e}")

    return logger


logger = logging.getLogger("telegram_pm2.errors")


def log_error(function_name: str, error: Exception, **context: Any) -> None:
    """Log a handled error together with its request context.

    Args:
        function_name: Name of the function where the error occurred
        error: The exception that was raised
        **context: Additional context to log (e.g., chat_id=123)
    """
    context_str = ", ".join(f"{k}={v}" for k, v in context.items())

    log_message = f"Error in {function_name}"
    if context_str:
        log_message += f" ({context_str})"
    log_message += f": {error}"

    logger.error(log_message)
