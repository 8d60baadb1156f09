import logging
import os
from pathlib import Path
from typing import Optional, Union

from constants import DEFAULT_LOG_FORMAT

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "NOTSET": logging.NOTSET,
}


def parse_level(value: Union[str, int, None], default: int = logging.INFO) -> int:
    if value is None:
        return default
    if isinstance(value, int):
        return value
    text = str(value).strip().upper()
    if not text:
        return default
    if text in _LEVELS:
        return _LEVELS[text]
    try:
        return int(text)
    except ValueError:
        return default


def setup_logging(log_level: Union[str, int, None] = "INFO", log_file: Optional[str] = None, log_format: Optional[str] = None):
    """Configure root logging for the service.

    Safe to call more than once; previously installed root handlers are replaced.
    """
    handlers = [logging.StreamHandler()]

    if log_file and log_file.strip():
        path = Path(os.path.expanduser(log_file))
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    formatter = logging.Formatter(fmt=log_format or DEFAULT_LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(parse_level(log_level))

    # redis-py and uvicorn access logs are noisy at DEBUG
    logging.getLogger("redis").setLevel(logging.WARNING)
    logging.captureWarnings(True)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
