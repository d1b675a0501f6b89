"""Logger utility shared by every storechat module."""
import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

logger = logging.getLogger("storechat")
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())


def get_logger(component: str = None) -> logging.Logger:
    """The package logger, or a child such as ``storechat.executor``."""
    return logger.getChild(component) if component else logger
