# ABOUTME: Converts raw watch-time observations into clamped completion ratios.
# ABOUTME: Falls back to a fixed nominal chapter length when duration is unknown.

from __future__ import annotations

import math
from typing import Optional

import numpy as np

# Ten minutes of watch time counts as a complete chapter when the real length is unknown.
FALLBACK_DURATION_SECONDS = 600.0


def clamp01(value: float) -> float:
    if value is None or not math.isfinite(value):
        return 0.0
    return max(0.0, min(1.0, value))


def _finite_or_zero(value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def completion_ratio(
    watched_seconds: float,
    duration_seconds: Optional[float] = None,
    fallback_seconds: float = FALLBACK_DURATION_SECONDS,
) -> float:
    """
    Fraction of a chapter considered watched, always within [0, 1].

    Negative or non-finite watch times count as zero. A missing, zero or
    non-finite duration switches to ``watched / fallback_seconds``.
    """

    watched = max(0.0, _finite_or_zero(watched_seconds))
    duration = max(0.0, _finite_or_zero(duration_seconds))
    if duration > 0:
        return clamp01(watched / duration)
    return clamp01(watched / fallback_seconds)


def completion_ratios(watched, duration, fallback_seconds: float = FALLBACK_DURATION_SECONDS) -> np.ndarray:
    """Vectorized ``completion_ratio`` over array-likes; ``None``/NaN behave like the scalar form."""

    watched_arr = np.asarray(watched, dtype=float)
    duration_arr = np.asarray(duration, dtype=float)
    watched_arr = np.where(np.isfinite(watched_arr), np.maximum(watched_arr, 0.0), 0.0)
    duration_arr = np.where(np.isfinite(duration_arr), np.maximum(duration_arr, 0.0), 0.0)

    known = duration_arr > 0
    denominator = np.where(known, duration_arr, fallback_seconds)
    return np.clip(watched_arr / denominator, 0.0, 1.0)
