"""Base flag value types and helpers for command-line flags.

Flags are posix style by default, with long names, optional one-letter
shorthands and aliases, while standard single-dash long flags are accepted as
a fallback. Values can take their defaults from environment variables.
"""

from __future__ import annotations

import os
import re
from abc import ABC, abstractmethod
from fractions import Fraction
from typing import Any, Callable, Optional

MAX_LINE_LENGTH = 78

_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_UNIT_NANOS = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_SEGMENT = re.compile(r"(\d*)(?:\.(\d*))?([^\d.]*)")
_WRAP_PENALTY = 100_000


def parse_bool(text: str) -> bool:
    """Parse the boolean spellings accepted on the command line."""
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise ValueError(f'parsing "{text}": invalid syntax')


def parse_duration(text: str) -> float:
    """Parse a duration such as "1h30m" or "1.5s" into seconds."""
    original = text
    negative = False
    if text[:1] in ("-", "+"):
        negative = text[0] == "-"
        text = text[1:]
    if text == "0":
        return 0.0
    if not text:
        raise ValueError(f'time: invalid duration "{original}"')

    total = Fraction(0)
    pos = 0
    while pos < len(text):
        match = _SEGMENT.match(text, pos)
        whole, fraction, unit = match.groups()
        if not whole and not fraction:
            raise ValueError(f'time: invalid duration "{original}"')
        if not unit:
            raise ValueError(f'time: missing unit in duration "{original}"')
        if unit not in _UNIT_NANOS:
            raise ValueError(f'time: unknown unit "{unit}" in duration "{original}"')
        number = Fraction(int(whole or "0"))
        if fraction:
            number += Fraction(int(fraction), 10 ** len(fraction))
        total += number * _UNIT_NANOS[unit]
        pos = match.end()

    nanos = int(total)
    limit = 2**63 if negative else 2**63 - 1
    if nanos > limit:
        raise ValueError(f'time: invalid duration "{original}"')
    return (-nanos if negative else nanos) / 1_000_000_000


def env_default(key: str, default: str) -> str:
    """Return the environment variable if it is set, else the default."""
    return os.environ.get(key, default)


def env_bool_default(key: str, default: bool) -> bool:
    """Return the environment variable as a boolean, else the default."""
    if key in os.environ:
        return parse_bool(os.environ[key])
    return default


def env_duration_default(key: str, default: float) -> float:
    """Return the environment variable as a duration in seconds, else the default."""
    if key in os.environ:
        return parse_duration(os.environ[key])
    return default


def _wrap_words(words: list, limit: int) -> list:
    count = len(words)
    lengths = [[0] * count for _ in range(count)]
    for i, word in enumerate(words):
        lengths[i][i] = len(word)
        for j in range(i + 1, count):
            lengths[i][j] = lengths[i][j - 1] + 1 + len(words[j])

    breaks = [0] * count
    costs = [2**31 - 1] * count
    for i in reversed(range(count)):
        if lengths[i][count - 1] <= limit or i == count - 1:
            costs[i] = 0
            breaks[i] = count
            continue
        for j in range(i + 1, count):
            slack = limit - lengths[i][j - 1]
            cost = slack * slack + costs[j]
            if lengths[i][j - 1] > limit:
                cost += _WRAP_PENALTY
            if cost < costs[i]:
                costs[i] = cost
                breaks[i] = j

    lines = []
    start = 0
    while start < count:
        lines.append(words[start:breaks[start]])
        start = breaks[start]
    return lines


def wrap_at_length_with_padding(text: str, pad: int) -> str:
    """Wrap text to the maximum line length, indenting every line by pad."""
    words = text.strip().replace("\n", " ").split(" ")
    lines = (" ".join(line) for line in _wrap_words(words, MAX_LINE_LENGTH - pad))
    return "\n".join(" " * pad + line for line in lines)


class FlagValue(ABC):
    """A typed value that a command-line flag sets."""

    type_name = ""
    example = ""
    is_bool_flag = False

    def __init__(
        self,
        default: Any = None,
        *,
        hidden: bool = False,
        set_hook: Optional[Callable[[Any], None]] = None,
    ) -> None:
        self.value = default
        self.hidden = hidden
        self.set_hook = set_hook

    @abstractmethod
    def _parse(self, text: str) -> Any:
        """Convert command-line text into the flag's value."""

    def set(self, text: str) -> None:
        """Set the value from command-line text; raises ValueError if invalid."""
        value = self._parse(text)
        self.value = value
        if self.set_hook is not None:
            self.set_hook(value)

    def get(self) -> Any:
        """Return the current value."""
        return self.value

    def __str__(self) -> str:
        return "" if self.value is None else str(self.value)


class BoolValue(FlagValue):
    """A boolean flag that may be given without a value."""

    type_name = "bool"
    example = ""
    is_bool_flag = True

    def __init__(
        self,
        default: bool = False,
        *,
        hidden: bool = False,
        set_hook: Optional[Callable[[bool], None]] = None,
    ) -> None:
        super().__init__(default, hidden=hidden, set_hook=set_hook)

    def _parse(self, text: str) -> bool:
        return parse_bool(text)

    def __str__(self) -> str:
        return "true" if self.value else "false"