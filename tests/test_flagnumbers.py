import math

import pytest

from nomadpack.flagnumbers import (
    FloatValue,
    IntValue,
    UintValue,
    format_float,
    parse_int,
    parse_uint,
)


@pytest.mark.parametrize("number", [0, 7, 42, 255, 123456789])
def test_parse_int_prefixes_round_trip(number):
    assert parse_int(str(number)) == number
    assert parse_int(hex(number)) == number
    assert parse_int(oct(number)) == number
    assert parse_int(bin(number)) == number
    assert parse_int("-" + str(number)) == -number


def test_parse_int_leading_zero_is_octal():
    assert parse_int("010") == parse_int("0o10")
    assert parse_int("0777") == parse_int("0o777")


def test_parse_int_underscores():
    assert parse_int("1_000") == parse_int("1000")
    assert parse_int("0x_ff") == parse_int("0xff")


@pytest.mark.parametrize("text", ["", "-", "abc", "_1", "1__0", "1_", "0x", "09", "1.5", " 1"])
def test_parse_int_invalid_syntax(text):
    with pytest.raises(ValueError, match="invalid syntax"):
        parse_int(text)


def test_parse_int_limits():
    assert parse_int(str(2**63 - 1)) == 2**63 - 1
    assert parse_int(str(-(2**63))) == -(2**63)
    with pytest.raises(ValueError, match="out of range"):
        parse_int(str(2**63))
    with pytest.raises(ValueError, match="out of range"):
        parse_int(str(-(2**63) - 1))


def test_parse_uint_limits_and_sign():
    assert parse_uint(str(2**64 - 1)) == 2**64 - 1
    with pytest.raises(ValueError, match="out of range"):
        parse_uint(str(2**64))
    with pytest.raises(ValueError, match="invalid syntax"):
        parse_uint("-1")
    with pytest.raises(ValueError, match="invalid syntax"):
        parse_uint("+1")


@pytest.mark.parametrize(
    "number", [0.5, 1.0, 3.25, 100000.0, 1234567.0, 1e-7, 0.0001, -2.5, 1e300, 123.456]
)
def test_format_float_round_trips(number):
    assert float(format_float(number)) == number


def test_format_float_pinned_values():
    assert format_float(1e6) == "1e+06"
    assert format_float(1e-5) == "1e-05"
    assert format_float(float("inf")) == "+Inf"


def test_format_float_plain_range():
    assert "e" not in format_float(123456.0)
    assert "e" not in format_float(0.0001)
    assert format_float(0.0) == "0"
    assert format_float(float("nan")) == "NaN"


def test_int_value_set_and_hook():
    seen = []
    value = IntValue(set_hook=seen.append)
    assert value.get() == 0
    value.set("42")
    assert value.get() == 42
    assert str(value) == "42"
    assert seen == [42]
    assert value.type_name == "int"


def test_int_value_invalid_keeps_previous():
    value = IntValue(5)
    with pytest.raises(ValueError):
        value.set("five")
    assert value.get() == 5


def test_uint_value_rejects_negative():
    value = UintValue(3)
    with pytest.raises(ValueError):
        value.set("-3")
    assert value.get() == 3
    value.set("0x10")
    assert value.get() == parse_uint("16")
    assert value.type_name == "uint"


def test_float_value_set():
    value = FloatValue()
    value.set("2.5")
    assert value.get() == 2.5
    assert float(str(value)) == 2.5
    value.set("-inf")
    assert value.get() == -math.inf
    with pytest.raises(ValueError, match="invalid syntax"):
        value.set("1,5")
    with pytest.raises(ValueError, match="out of range"):
        value.set("1e400")
    assert value.type_name == "float64"


def test_float_value_hex():
    value = FloatValue()
    value.set("0x1.8p1")
    assert value.get() == float.fromhex("0x1.8p1")