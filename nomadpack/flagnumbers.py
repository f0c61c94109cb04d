"""Integer, unsigned integer and floating point flag values."""

from __future__ import annotations

import json
import math
import re
from decimal import Decimal
from typing import Callable, Optional

from nomadpack.flagbase import FlagValue

_INT64_MAX = 2**63 - 1
_INT64_MIN_MAGNITUDE = 2**63
_UINT64_MAX = 2**64 - 1

_PREFIX_BASES = {"0x": 16, "0o": 8, "0b": 2}
_DIGIT_CLASSES = {2: "01", 8: "0-7", 10: "0-9", 16: "0-9a-fA-F"}

_DECIMAL_FLOAT = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)
_HEX_FLOAT = re.compile(
    r"[+-]?0[xX](?:[0-9a-fA-F]+\.?[0-9a-fA-F]*|\.[0-9a-fA-F]+)[pP][+-]?\d+",
    re.ASCII,
)
_INFINITY = re.compile(r"[+-]?(?:inf|infinity)", re.IGNORECASE)
_NAN = re.compile(r"nan", re.IGNORECASE)


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _syntax_error(text: str) -> ValueError:
    return ValueError(f"parsing {_quote(text)}: invalid syntax")


def _range_error(text: str) -> ValueError:
    return ValueError(f"parsing {_quote(text)}: value out of range")


def _parse_magnitude(body: str, original: str) -> int:
    """Parse an unsigned number, choosing the base from its prefix."""
    prefix = body[:2].lower()
    if prefix in _PREFIX_BASES:
        base = _PREFIX_BASES[prefix]
        digits = body[2:]
        prefixed = True
    elif len(body) > 1 and body[0] == "0":
        base = 8
        digits = body[1:]
        prefixed = True
    else:
        base = 10
        digits = body
        prefixed = False

    if prefixed and digits.startswith("_"):
        digits = digits[1:]

    digit_class = _DIGIT_CLASSES[base]
    pattern = rf"[{digit_class}]+(?:_[{digit_class}]+)*"
    if not re.fullmatch(pattern, digits):
        raise _syntax_error(original)
    return int(digits.replace("_", ""), base)


def parse_int(text: str) -> int:
    """Parse a signed 64-bit integer; 0x, 0o, 0b and leading-0 octal are accepted."""
    body = text
    negative = False
    if body[:1] in ("+", "-"):
        negative = body[0] == "-"
        body = body[1:]
    if not body:
        raise _syntax_error(text)
    magnitude = _parse_magnitude(body, text)
    limit = _INT64_MIN_MAGNITUDE if negative else _INT64_MAX
    if magnitude > limit:
        raise _range_error(text)
    return -magnitude if negative else magnitude


def parse_uint(text: str) -> int:
    """Parse an unsigned 64-bit integer; no sign is allowed."""
    if not text or text[0] in ("+", "-"):
        raise _syntax_error(text)
    magnitude = _parse_magnitude(text, text)
    if magnitude > _UINT64_MAX:
        raise _range_error(text)
    return magnitude


def _parse_float(text: str) -> float:
    if _NAN.fullmatch(text):
        return math.nan
    if _INFINITY.fullmatch(text):
        return -math.inf if text.startswith("-") else math.inf
    if _HEX_FLOAT.fullmatch(text):
        try:
            value = float.fromhex(text)
        except OverflowError:
            raise _range_error(text) from None
    elif _DECIMAL_FLOAT.fullmatch(text):
        value = float(text)
    else:
        raise _syntax_error(text)
    if math.isinf(value):
        raise _range_error(text)
    return value


def format_float(value: float) -> str:
    """Format a float with the fewest digits that read back exactly.

    Exponent form is used for exponents below -4 or from 6 upwards.
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    sign = "-" if math.copysign(1.0, value) < 0 else ""
    if value == 0:
        return sign + "0"

    parts = Decimal(repr(abs(value))).normalize().as_tuple()
    digits = "".join(str(d) for d in parts.digits)
    count = len(digits)
    point = count + parts.exponent
    exponent = point - 1

    if exponent < -4 or exponent >= 6:
        mantissa = digits[0]
        if count > 1:
            mantissa += "." + digits[1:]
        exp_sign = "-" if exponent < 0 else "+"
        return f"{sign}{mantissa}e{exp_sign}{abs(exponent):02d}"

    if point <= 0:
        body = "0." + "0" * (-point) + digits
    elif point >= count:
        body = digits + "0" * (point - count)
    else:
        body = digits[:point] + "." + digits[point:]
    return sign + body


class IntValue(FlagValue):
    """A signed integer flag."""

    type_name = "int"
    example = "int"

    def __init__(
        self,
        default: int = 0,
        *,
        hidden: bool = False,
        set_hook: Optional[Callable[[int], None]] = None,
    ) -> None:
        super().__init__(default, hidden=hidden, set_hook=set_hook)

    def _parse(self, text: str) -> int:
        return parse_int(text)

    def __str__(self) -> str:
        return str(self.value or 0)


class UintValue(FlagValue):
    """An unsigned integer flag."""

    type_name = "uint"
    example = "uint"

    def __init__(
        self,
        default: int = 0,
        *,
        hidden: bool = False,
        set_hook: Optional[Callable[[int], None]] = None,
    ) -> None:
        super().__init__(default, hidden=hidden, set_hook=set_hook)

    def _parse(self, text: str) -> int:
        return parse_uint(text)

    def __str__(self) -> str:
        return str(self.value or 0)


class FloatValue(FlagValue):
    """A 64-bit floating point flag."""

    type_name = "float64"
    example = "float"

    def __init__(self, default: float = 0.0, *, hidden: bool = False) -> None:
        super().__init__(default, hidden=hidden)

    def _parse(self, text: str) -> float:
        return _parse_float(text)

    def __str__(self) -> str:
        return format_float(self.value or 0.0)