# ABOUTME: Builds the fixed-length, gap-filled daily series used by charts.
# ABOUTME: Merges progress-day and quiz-day buckets into one row per calendar day.

from __future__ import annotations

from datetime import date
from typing import List, Mapping

from .day_keys import day_range
from .schemas import DayAggregate, DaySnapshot


def build_timeline(
    progress_by_day: Mapping[date, DayAggregate],
    quiz_by_day: Mapping[date, DayAggregate],
    period_days: int,
    reference_date: date,
) -> List[DaySnapshot]:
    """Exactly ``period_days`` rows ending at ``reference_date``; empty days are zeroed."""

    rows: List[DaySnapshot] = []
    for day in day_range(period_days, reference_date):
        progress = progress_by_day.get(day)
        quiz = quiz_by_day.get(day)

        learners = set()
        if progress is not None:
            learners |= progress.active_learners
        if quiz is not None:
            learners |= quiz.active_learners

        completion = 0.0
        if progress is not None and progress.ratio_sample_count > 0:
            completion = 100.0 * progress.ratio_sum / progress.ratio_sample_count

        quiz_avg = 0.0
        if quiz is not None and quiz.quiz_score_sample_count > 0:
            quiz_avg = quiz.quiz_score_sum / quiz.quiz_score_sample_count

        rows.append(
            DaySnapshot(
                day=day,
                completion_rate_pct=completion,
                quiz_attempts=quiz.quiz_attempts if quiz is not None else 0,
                quiz_avg_score_pct=quiz_avg,
                active_learners=frozenset(learners),
            )
        )
    return rows
