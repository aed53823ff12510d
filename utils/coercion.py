"""Loose value coercion used when validating incoming expense payloads.

Clients post plain JSON, so fields arrive as whatever the caller typed: numbers
as strings, flags as booleans, the occasional list. These helpers apply the
lenient truthiness/number/string rules the API has always accepted.
"""
import math
import re
from typing import Any, Union

# Optionally signed decimal literal with an optional exponent: "12", "-3.", ".5", "1e3"
_DECIMAL_LITERAL = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
# Unsigned hex/octal/binary integer literal: "0x1F", "0o17", "0b101"
_RADIX_LITERAL = re.compile(r"0[xX][0-9a-fA-F]+|0[oO][0-7]+|0[bB][01]+")


def is_truthy(value: Any) -> bool:
    """
    Loose presence check. Only None, False, zero, NaN and the empty string are falsy;
    empty lists and objects still count as present.
    """
    if value is None or value is False:
        return False
    if isinstance(value, (int, float)):
        return value != 0 and not math.isnan(value)
    if isinstance(value, str):
        return value != ""
    return True


def to_number(value: Any) -> Union[int, float]:
    """
    Coerces a JSON value to a finite number. Integral results come back as int.
    Lists read as their comma-joined text, so [] is 0, [5] is 5 and [1, 2] is not a number.
    Raises ValueError when the value does not read as one.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, list):
        return to_number(to_text(value))
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            raise ValueError(f"Number out of range: {value!r}")
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        if _DECIMAL_LITERAL.fullmatch(text):
            number = float(text)
        elif _RADIX_LITERAL.fullmatch(text):
            number = float(int(text, 0))
        else:
            raise ValueError(f"Not a number: {value!r}")
    else:
        raise ValueError(f"Not a number: {type(value).__name__}")

    if not math.isfinite(number):
        raise ValueError(f"Not a finite number: {value!r}")
    if number.is_integer():
        return int(number)
    return number


def to_text(value: Any) -> str:
    """
    Renders a JSON value as a string: booleans lowercase, integral floats without '.0',
    lists comma-joined (null items empty), objects as "[object Object]".
    """
    if isinstance(value, str):
        return value
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, list):
        return ",".join("" if item is None else to_text(item) for item in value)
    if isinstance(value, dict):
        return "[object Object]"
    return str(value)
