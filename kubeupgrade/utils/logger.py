"""Logging configuration."""

import logging
from typing import Optional

from ..errors import ConfigError

ROOT_LOGGER = "kubeupgrade"

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _root_logger() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)

    # Only configure if no handlers exist
    if not root.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        root.addHandler(handler)
        root.setLevel(logging.INFO)

    return root


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger that reports through the package handler."""
    root = _root_logger()
    if not name or name == ROOT_LOGGER:
        return root
    return logging.getLogger(name)


def parse_log_level(level: str) -> int:
    """Translate a level name into a logging level."""
    try:
        return LOG_LEVELS[level.strip().lower()]
    except (KeyError, AttributeError):
        raise ConfigError(f"unknown log level '{level}'")


def set_log_level(level: str) -> int:
    """Apply the named level to every kube-upgrade logger."""
    value = parse_log_level(level)
    _root_logger().setLevel(value)
    return value
