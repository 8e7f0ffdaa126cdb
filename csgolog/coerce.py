"""
Field coercion helpers for csgolog - convert captured log text to typed scalars.

Captured groups are guaranteed to hold digits by the patterns that produce
them, so a failed conversion means the pattern and the log disagree. By
default such failures yield the zero value; strict mode raises instead.
"""

import re
import struct
import logging

logger = logging.getLogger(__name__)

_INT_RE = re.compile(r'[+-]?\d+')
_FLOAT_RE = re.compile(r'[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?')

INT64_MIN = -2 ** 63
INT64_MAX = 2 ** 63 - 1


class CoercionError(ValueError):
    """Raised in strict mode when captured text cannot be converted."""

    def __init__(self, text: str, target: str):
        super().__init__(f"cannot convert {text!r} to {target}")
        self.text = text
        self.target = target


def to_int(text: str, strict: bool = False) -> int:
    """Convert text to a base-10 signed 64-bit integer.

    Args:
        text: Captured text
        strict: Raise CoercionError instead of returning 0

    Returns:
        Parsed integer, or 0 if the text is not an integer or is out of range
    """
    if text is not None and _INT_RE.fullmatch(text):
        value = int(text)
        if INT64_MIN <= value <= INT64_MAX:
            return value

    if strict:
        raise CoercionError(text, "int")

    logger.debug(f"Coerced non-integer text {text!r} to 0")
    return 0


def to_float32(text: str, strict: bool = False) -> float:
    """Convert text to a float rounded to single precision.

    Args:
        text: Captured text
        strict: Raise CoercionError instead of returning 0.0

    Returns:
        Parsed float, or 0.0 if the text is not a float or overflows
    """
    if text is not None and _FLOAT_RE.fullmatch(text):
        try:
            return round_float32(float(text))
        except OverflowError:
            pass

    if strict:
        raise CoercionError(text, "float32")

    logger.debug(f"Coerced non-float text {text!r} to 0.0")
    return 0.0


def round_float32(value: float) -> float:
    """Round a double to the nearest single-precision value."""
    return struct.unpack('f', struct.pack('f', value))[0]


def format_float32(value: float) -> float:
    """Return the shortest double that rounds to the same single-precision value.

    A float32 widened to a double prints with spurious digits
    (3.45 -> 3.450000047683716); this restores the short form.
    """
    for precision in range(1, 10):
        candidate = float(f"{value:.{precision}g}")
        if round_float32(candidate) == value:
            return candidate
    return value
