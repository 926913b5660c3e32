# ABOUTME: Tests the gap-filled daily timeline.
# ABOUTME: Verifies fixed length, calendar order and merged active learners.

from datetime import date, timedelta

import pytest

from src.common.schemas import DayAggregate
from src.common.timeline import build_timeline


def test_timeline_has_exact_length_even_without_data():
    reference = date(2024, 3, 3)
    rows = build_timeline({}, {}, 7, reference)

    assert len(rows) == 7
    assert [r.day for r in rows] == [reference - timedelta(days=6 - i) for i in range(7)]
    for row in rows:
        assert row.completion_rate_pct == 0.0
        assert row.quiz_attempts == 0
        assert row.quiz_avg_score_pct == 0.0
        assert row.active_learners == frozenset()


def test_timeline_merges_progress_and_quiz_days():
    day = date(2024, 3, 2)
    progress = {day: DayAggregate(day, ratio_sum=1.5, ratio_sample_count=3, active_learners={"u1", "u2"})}
    quiz = {
        day: DayAggregate(
            day, quiz_attempts=3, quiz_score_sum=150.0, quiz_score_sample_count=2, active_learners={"u2", "u3"}
        )
    }

    rows = build_timeline(progress, quiz, 3, date(2024, 3, 3))

    middle = rows[1]
    assert middle.day == day
    assert middle.completion_rate_pct == pytest.approx(50.0)
    assert middle.quiz_attempts == 3
    assert middle.quiz_avg_score_pct == pytest.approx(75.0)
    assert middle.active_learners == frozenset({"u1", "u2", "u3"})


def test_timeline_ignores_days_outside_window():
    old = date(2024, 1, 1)
    progress = {old: DayAggregate(old, ratio_sum=1.0, ratio_sample_count=1, active_learners={"u1"})}
    rows = build_timeline(progress, {}, 2, date(2024, 3, 3))
    assert all(r.completion_rate_pct == 0.0 for r in rows)


def test_non_positive_period_yields_empty_timeline():
    assert build_timeline({}, {}, 0, date(2024, 3, 3)) == []
