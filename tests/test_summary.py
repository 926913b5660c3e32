# ABOUTME: Tests the weekly summary job used for backend dashboard counters.
# ABOUTME: Ensures its rates agree with the engine's ratio and day-key rules.

from datetime import date

import pandas as pd
import pytest

from src.common.summary import SUMMARY_COLUMNS, weekly_summary

from scenario import at, scenario_attempts, scenario_events


def _events_frame(events):
    return pd.DataFrame(
        [
            {
                "learner_id": e.learner_id,
                "course_id": e.course_id,
                "chapter_id": e.chapter_id,
                "watched_seconds": e.watched_seconds,
                "duration_seconds": e.duration_seconds,
                "occurred_at_ms": e.occurred_at_ms,
            }
            for e in events
        ]
    )


def _attempts_frame(attempts):
    return pd.DataFrame(
        [
            {
                "quiz_id": a.quiz_id,
                "learner_id": a.learner_id,
                "score": a.score,
                "max_score": a.max_score,
                "created_at_ms": a.created_at_ms,
            }
            for a in attempts
        ]
    )


def test_weekly_summary_matches_engine_rates():
    summary = weekly_summary(_events_frame(scenario_events()), _attempts_frame(scenario_attempts()))

    assert list(summary.columns) == SUMMARY_COLUMNS
    assert len(summary) == 1
    row = summary.iloc[0]
    # 2024-03-01 is a Friday; the ISO week starts on Monday 2024-02-26.
    assert row["week_start"] == date(2024, 2, 26)
    assert row["events"] == 10
    assert row["completion_rate_pct"] == pytest.approx(51.0)
    assert row["active_learners"] == 2
    assert row["quiz_attempts"] == 5
    assert row["quiz_avg_score_pct"] == pytest.approx(200 / 3)


def test_weekly_summary_splits_weeks():
    events = _events_frame(scenario_events())
    monday = pd.DataFrame(
        [
            {
                "learner_id": "u3",
                "course_id": "c1",
                "chapter_id": "ch1",
                "watched_seconds": 600,
                "duration_seconds": None,
                "occurred_at_ms": at(3),
            }
        ]
    )

    summary = weekly_summary(pd.concat([events, monday], ignore_index=True), None)

    assert [r for r in summary["week_start"]] == [date(2024, 2, 26), date(2024, 3, 4)]
    assert summary.iloc[1]["completion_rate_pct"] == pytest.approx(100.0)
    assert summary.iloc[1]["quiz_attempts"] == 0
    assert summary.iloc[1]["quiz_avg_score_pct"] == 0.0


def test_weekly_summary_empty():
    assert weekly_summary(pd.DataFrame(), pd.DataFrame()).empty


def test_weekly_summary_drops_attempts_for_unknown_quizzes():
    summary = weekly_summary(
        _events_frame(scenario_events()), _attempts_frame(scenario_attempts()), quiz_ids=["q1"]
    )

    row = summary.iloc[0]
    assert row["quiz_attempts"] == 3
    assert row["quiz_avg_score_pct"] == pytest.approx((100 + 100 / 3 + 100 / 3) / 3)
    assert row["events"] == 10


def test_weekly_summary_tolerates_unusable_timestamps():
    attempts = _attempts_frame(scenario_attempts()[:1])
    attempts["created_at_ms"] = [float("inf")]

    summary = weekly_summary(None, attempts)

    assert summary.iloc[0]["week_start"] == date(1969, 12, 29)
    assert summary.iloc[0]["quiz_attempts"] == 1
