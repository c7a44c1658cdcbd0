from __future__ import annotations

import logging
import os
from pathlib import Path

LOG_DIR_ENV = "ECAGATE_LOG_DIR"
LOG_FILE_ENV = "ECAGATE_LOG_FILE"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_LOGGER_NAME = "ecagate"


def get_log_dir() -> Path:
    """Return the base directory for logs, creating it if needed."""
    log_dir = Path(os.getenv(LOG_DIR_ENV, "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def get_log_path(name: str, env_var: str | None = None) -> Path:
    """Return a log file path.

    If *env_var* is provided and that environment variable is set,
    its value is used directly. Otherwise the path is relative to
    the configured log directory.
    """
    if env_var and env_var in os.environ:
        return Path(os.environ[env_var])
    return get_log_dir() / name


def configure_logging(verbose: bool = False) -> logging.Logger:
    """Attach console and file handlers to the package logger once."""
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT)
    log_path = get_log_path("ecagate.log", LOG_FILE_ENV)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(logging.WARNING)
    logger.addHandler(stream_handler)
    logger.propagate = False
    return logger
