"""Go-style duration strings ("90s", "5m", "1h30m")."""

import re
from datetime import timedelta

from ..errors import ConfigError

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> timedelta:
    """Parse a duration such as "3h" or "1m30s"."""
    if not isinstance(value, str) or not value:
        raise ConfigError(f'invalid duration "{value}"')

    text = value.strip()
    sign = 1
    if text[0] in "+-":
        sign = -1 if text[0] == "-" else 1
        text = text[1:]

    if text == "0":
        return timedelta(0)

    seconds = 0.0
    pos = 0
    for match in _COMPONENT.finditer(text):
        if match.start() != pos:
            raise ConfigError(f'invalid duration "{value}"')
        seconds += float(match.group(1)) * _UNITS[match.group(2)]
        pos = match.end()

    if pos == 0 or pos != len(text):
        raise ConfigError(f'invalid duration "{value}"')

    return timedelta(seconds=sign * seconds)


def format_duration(delta: timedelta) -> str:
    """Render a timedelta in the shortest Go-style form."""
    total = int(delta.total_seconds())
    if total == 0:
        return "0s"

    sign = "-" if total < 0 else ""
    total = abs(total)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)

    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if seconds:
        parts.append(f"{seconds}s")
    return sign + "".join(parts)


def parse_interval(value: str) -> timedelta:
    """Parse a duration used as a sleep interval, which must be positive."""
    delta = parse_duration(value)
    if delta.total_seconds() <= 0:
        raise ConfigError(f'interval "{value}" must be positive')
    return delta
