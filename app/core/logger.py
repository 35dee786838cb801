import logging
import os


LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s]: %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Logger factory; level comes from LOG_LEVEL (default DEBUG)."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(os.getenv("LOG_LEVEL", "DEBUG").upper())
    return logger
