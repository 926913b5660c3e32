# ABOUTME: Tests the watch-time to completion-ratio conversion.
# ABOUTME: Covers known durations, the fallback length and malformed inputs.

import math

import numpy as np
import pytest

from src.common.ratio import FALLBACK_DURATION_SECONDS, clamp01, completion_ratio, completion_ratios


def test_completion_ratio_uses_known_duration():
    assert completion_ratio(300, 600) == 0.5
    assert completion_ratio(900, 600) == 1.0


def test_completion_ratio_falls_back_when_duration_unknown():
    assert FALLBACK_DURATION_SECONDS == 600
    assert completion_ratio(300, 0) == 0.5
    assert completion_ratio(300, None) == 0.5
    assert completion_ratio(1200) == 1.0


@pytest.mark.parametrize(
    "watched,duration",
    [(-50, 600), (float("nan"), 600), (float("inf"), 600), (None, None), (100, -10), (100, float("nan")), ("abc", 600)],
)
def test_completion_ratio_stays_in_unit_interval(watched, duration):
    ratio = completion_ratio(watched, duration)
    assert 0.0 <= ratio <= 1.0
    assert not math.isnan(ratio)


def test_completion_ratio_negative_watch_is_zero():
    assert completion_ratio(-50, 600) == 0.0


def test_clamp01_handles_non_finite():
    assert clamp01(float("nan")) == 0.0
    assert clamp01(2.5) == 1.0
    assert clamp01(-1.0) == 0.0


def test_completion_ratios_matches_scalar_form():
    watched = [300, 900, 300, -50, 120, float("nan")]
    duration = [600, 600, 0, 600, None, 300]
    expected = [completion_ratio(w, d) for w, d in zip(watched, duration)]

    result = completion_ratios(watched, duration)

    assert isinstance(result, np.ndarray)
    assert result.tolist() == pytest.approx(expected)
