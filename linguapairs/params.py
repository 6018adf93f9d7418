"""
LinguaPairs Backend - Query parameter parsing
"""

from typing import Optional
import math


def parse_int_param(
    raw: Optional[str],
    default: Optional[int] = None,
    minimum: Optional[int] = None,
    maximum: Optional[int] = None,
) -> Optional[int]:
    """
    Parse a client-supplied integer query parameter.

    Missing, non-numeric, non-finite and fractional values return ``default``.
    A parsed value is clamped to ``[minimum, maximum]`` when bounds are given.
    """
    if raw is None:
        return default

    text = raw.strip()
    if not text:
        return default

    try:
        value = float(text)
    except ValueError:
        return default

    if not math.isfinite(value) or not value.is_integer():
        return default

    result = int(value)
    if minimum is not None:
        result = max(minimum, result)
    if maximum is not None:
        result = min(maximum, result)
    return result
