# backend/sentinel/core/logging.py
import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single console handler on the "sentinel" logger (idempotent)."""
    logger = logging.getLogger("sentinel")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # clear existing handlers to avoid duplicates on reload
    logger.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
