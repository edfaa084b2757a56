"""Shared logger for the chatbot backend; level comes from LOG_LEVEL."""
import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logger = logging.getLogger("chatbot")
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())


def get_logger(name: str = None) -> logging.Logger:
    """The shared "chatbot" logger, or a named child that inherits its handler."""
    return logger.getChild(name) if name else logger
