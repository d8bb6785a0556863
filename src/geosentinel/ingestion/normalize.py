"""Normalization helpers.

Centralizes defensive parsing of coordinates and timestamps coming from
samplers and from the local database.
"""

from __future__ import annotations

import math
import time
from typing import Any


def now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


def safe_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def checked_epoch_ms(value: Any) -> int | None:
    """Return *value* if it is a positive integer epoch-millisecond timestamp.

    The value is never rescaled: a stored capture time is uploaded exactly as
    it was written.
    """
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return None
    return value
