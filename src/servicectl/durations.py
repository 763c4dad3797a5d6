"""Duration strings in the ``1m30s`` form used throughout the config."""

from __future__ import annotations

import re

from .errors import ConfigurationError

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str | int | float) -> float:
    """Parse ``300ms``, ``30s``, ``1m30s`` or ``2h`` into seconds.

    Bare numbers are taken as seconds. Anything else raises
    ``ConfigurationError``; there is no fallback default.
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        if value < 0:
            raise ConfigurationError(f"invalid duration: {value!r}")
        return float(value)
    if not isinstance(value, str):
        raise ConfigurationError(f"invalid duration: {value!r}")

    text = value.strip()
    if text == "0":
        return 0.0
    if not text:
        raise ConfigurationError("invalid duration: empty string")

    total = 0.0
    pos = 0
    for match in _PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text) or pos == 0:
        raise ConfigurationError(f"invalid duration: {value!r}")
    return total


def format_duration(seconds: float) -> str:
    if seconds < 1:
        return f"{round(seconds * 1000)}ms"
    if seconds < 60:
        return f"{seconds:g}s"
    minutes, rest = divmod(int(seconds), 60)
    if minutes < 60:
        return f"{minutes}m{rest}s" if rest else f"{minutes}m"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h{minutes}m" if minutes else f"{hours}h"


__all__ = ["parse_duration", "format_duration"]
