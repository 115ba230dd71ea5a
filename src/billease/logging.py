import logging
import os
from typing import Optional, Union

NAMESPACE = "billease"
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_level(value: Optional[Union[str, int]]) -> int:
    """Map LOG_LEVEL text ('debug', 'WARN', '10') to a logging level; INFO otherwise."""
    if isinstance(value, int):
        return value
    text = (value or "").strip().upper()
    if text.isdigit():
        return int(text)
    level = logging.getLevelName(text)
    return level if isinstance(level, int) else logging.INFO


def _handlers(formatter: logging.Formatter) -> list:
    handlers = [logging.StreamHandler()]
    log_file = os.environ.get("LOG_FILE")
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
        except OSError as exc:
            logging.getLogger(NAMESPACE).warning("LOG_FILE %s not writable (%s)", log_file, exc)
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def get_logger(name: str) -> logging.Logger:
    """Logger ``billease.<name>`` writing to stderr, plus LOG_FILE when set.

    Level comes from LOG_LEVEL and is read when a logger is first requested.
    """
    logger = logging.getLogger(f"{NAMESPACE}.{name}")
    if logger.handlers:
        return logger
    level = resolve_level(os.environ.get("LOG_LEVEL"))
    logger.setLevel(level)
    for handler in _handlers(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)):
        handler.setLevel(level)
        logger.addHandler(handler)
    logger.propagate = False
    return logger
