"""Shared helpers."""

from .duration import parse_duration, parse_interval, format_duration
from .logger import get_logger, set_log_level

__all__ = ["parse_duration", "parse_interval", "format_duration", "get_logger", "set_log_level"]
