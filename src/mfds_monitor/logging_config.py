"""
Logging setup driven by LoggingConfig.
"""
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import LoggingConfig

NOISY_LOGGERS = ["httpx", "httpcore", "google_genai", "openai"]


def setup_logging(logging_config: LoggingConfig, debug: bool = False) -> None:
    """Configure the root logger once per process."""
    level = logging.DEBUG if debug else getattr(logging, logging_config.level)
    formatter = logging.Formatter(logging_config.format)

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        if getattr(handler, "_mfds_monitor", False):
            root.removeHandler(handler)

    handlers = [logging.StreamHandler()]
    if logging_config.file:
        Path(logging_config.file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            logging_config.file,
            maxBytes=logging_config.max_bytes,
            backupCount=logging_config.backup_count,
            encoding="utf-8",
        ))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler._mfds_monitor = True
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
