"""Duration flag values."""

from __future__ import annotations

from typing import Optional

from nomadpack.flagbase import FlagValue, parse_duration

_NANOS_PER_SECOND = 1_000_000_000
_NANOS_PER_MINUTE = 60 * _NANOS_PER_SECOND


def append_duration_suffix(text: str) -> str:
    """Treat a value without a unit suffix as seconds."""
    if text.endswith(("s", "m", "h")):
        return text
    return text + "s"


def _fraction(value: int, precision: int) -> str:
    whole, frac = divmod(value, 10**precision)
    digits = f"{frac:0{precision}d}".rstrip("0")
    return f"{whole}.{digits}" if digits else str(whole)


def format_duration(seconds: float) -> str:
    """Format a duration in seconds as text such as "1h2m3.5s"."""
    nanos = round(seconds * _NANOS_PER_SECOND)
    if nanos == 0:
        return "0s"
    sign = "-" if nanos < 0 else ""
    value = abs(nanos)

    if value < _NANOS_PER_SECOND:
        if value < 1_000:
            return f"{sign}{value}ns"
        if value < 1_000_000:
            return f"{sign}{_fraction(value, 3)}\u00b5s"
        return f"{sign}{_fraction(value, 6)}ms"

    out = _fraction(value % _NANOS_PER_MINUTE, 9) + "s"
    minutes = value // _NANOS_PER_MINUTE
    if minutes:
        out = f"{minutes % 60}m" + out
        hours = minutes // 60
        if hours:
            out = f"{hours}h" + out
    return sign + out


class DurationValue(FlagValue):
    """A duration flag, held in seconds; bare numbers mean seconds."""

    type_name = "duration"
    example = "duration"

    def __init__(self, default: float = 0.0, *, hidden: bool = False) -> None:
        super().__init__(default, hidden=hidden)

    def _parse(self, text: str) -> float:
        return parse_duration(append_duration_suffix(text))

    def __str__(self) -> str:
        return format_duration(self.value or 0.0)