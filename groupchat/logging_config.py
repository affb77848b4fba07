"""Logging configuration for chat server events."""
import logging
from logging.handlers import RotatingFileHandler

from .config import LOG_FILE, LOG_LEVEL


def configure_logging() -> logging.Logger:
    """Configure the application logger once: console plus a rotating file."""
    logger = logging.getLogger("groupchat")
    logger.setLevel(LOG_LEVEL)
    if not logger.handlers:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        logger.addHandler(console)

        LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(LOG_FILE, maxBytes=5 * 1024 * 1024, backupCount=3, delay=True)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger
