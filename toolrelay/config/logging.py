"""
Logging configuration and setup.

One console handler (colored) and an optional file handler are shared by the
``toolrelay`` logger tree and by uvicorn's loggers, so server access lines and
client retry warnings end up in the same place. Configured API keys are
redacted from every record before it is written.
"""

import logging
import sys
from collections.abc import Iterable
from pathlib import Path

from toolrelay.config.settings import Settings

# Loggers that receive the toolrelay handlers
MANAGED_LOGGERS = ("toolrelay", "uvicorn", "uvicorn.access", "uvicorn.error")

# LiteLLM logs every request at INFO; only let it through when debugging
NOISY_LOGGERS = ("LiteLLM", "LiteLLM Proxy", "LiteLLM Router", "httpx")


class ColoredFormatter(logging.Formatter):
    """Formatter that adds color to console output."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # Color a copy: the same record also goes to the file handler
        colored = logging.makeLogRecord(record.__dict__)
        if colored.levelname in self.COLORS:
            colored.levelname = f"{self.COLORS[colored.levelname]}{colored.levelname}{self.RESET}"
        return super().format(colored)


def mask_secret(secret: str) -> str:
    """``sk-abcdef123456`` -> ``sk-a...3456``; short secrets are fully hidden."""
    if len(secret) > 8:
        return f"{secret[:4]}...{secret[-4:]}"
    return "****"


class SecretFilter(logging.Filter):
    """
    Redacts known secrets from log messages.

    Provider errors often echo the rejected API key back, and those errors
    are logged by the client on every failed attempt.
    """

    def __init__(self, secrets: Iterable[str]):
        super().__init__()
        # Longest first so a key that contains another is masked whole
        self._secrets = sorted({s for s in secrets if s}, key=len, reverse=True)

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True
        message = record.getMessage()
        redacted = message
        for secret in self._secrets:
            redacted = redacted.replace(secret, mask_secret(secret))
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _build_handlers(settings: Settings, level: int) -> list[logging.Handler]:
    secret_filter = SecretFilter(settings.llm.api_keys)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(
        ColoredFormatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    handlers: list[logging.Handler] = [console_handler]

    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(level)
        handler.addFilter(secret_filter)
    return handlers


def setup_logging(settings: Settings) -> None:
    """
    Configure logging based on settings.

    Safe to call more than once: handlers from a previous call are replaced.

    Args:
        settings: Application settings containing log and API key configuration
    """
    level = getattr(logging, settings.log_level)
    handlers = _build_handlers(settings, level)

    for name in MANAGED_LOGGERS:
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.setLevel(level)
        # uvicorn.access / uvicorn.error get their own copy instead of
        # propagating to "uvicorn", which would print each line twice
        logger.propagate = False
        for handler in handlers:
            logger.addHandler(handler)

    noisy_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)

    app_logger = logging.getLogger("toolrelay")
    app_logger.info(f"Logging initialized - Level: {settings.log_level}")
    if settings.log_file:
        app_logger.info(f"Logging to file: {settings.log_file}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Names already under the ``toolrelay`` namespace (e.g. ``__name__`` of a
    package module) are used as-is.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    if name == "toolrelay" or name.startswith("toolrelay."):
        return logging.getLogger(name)
    return logging.getLogger(f"toolrelay.{name}")
