"""Logging setup for the relief kernel."""

import logging
from pathlib import Path
from typing import Any, Optional

from relief_kernel.utils.config import Settings


class ContextAdapter(logging.LoggerAdapter):
    """
    Prefix messages with the identity a session works for.

    The context travels with the adapter instance rather than a global
    filter, so concurrent sessions never see each other's identity.
    """

    def process(self, msg: Any, kwargs: Any):
        if self.extra:
            prefix = " ".join(f"{k}={v}" for k, v in self.extra.items() if v is not None)
            if prefix:
                msg = f"[{prefix}] {msg}"
        kwargs.setdefault("extra", {}).update(self.extra)
        return msg, kwargs


def setup_logging(
    level: str = "INFO",
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the root logger with console and optional file output.

    Args:
        level: Logging level name
        log_format: Format string for log records
        log_file: Optional path to a log file; parent directories are created

    Returns:
        The configured root logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    return root_logger


def setup_logging_from_settings(settings: Settings) -> logging.Logger:
    return setup_logging(
        level=settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def context_logger(logger: logging.Logger, **context: Any) -> ContextAdapter:
    """Wrap a logger so every record carries the given context fields."""
    return ContextAdapter(logger, context)
