# ABOUTME: Tests the end-to-end snapshot against a hand-computed reference fixture.
# ABOUTME: Also checks idempotence, empty inputs and config-driven limits.

from dataclasses import replace
from datetime import date

import pytest

from src.common.config import DEFAULT_CONFIG
from src.common.engine import build_snapshot
from src.common.schemas import ProgressEvent, QuizAttempt, QuizInfo

from scenario import DAY0_MS, REFERENCE_DATE, scenario_attempts, scenario_events, scenario_questions


def _snapshot(**kwargs):
    return build_snapshot(
        scenario_events(),
        scenario_attempts(),
        scenario_questions(),
        period_days=kwargs.pop("period_days", 7),
        reference_date=REFERENCE_DATE,
        **kwargs,
    )


def test_scenario_overall_metrics():
    snap = _snapshot()

    assert snap.overall.learners == 2
    assert snap.overall.completion_rate_pct == pytest.approx(51.0)
    assert snap.overall.quiz_attempts == 5
    assert snap.overall.quiz_avg_score_pct == pytest.approx(200 / 3)
    assert snap.overall.quiz_best_score_pct == pytest.approx(100.0)
    assert snap.overall.at_risk_learners == 1


def test_scenario_at_risk_learners():
    snap = _snapshot()

    assert len(snap.at_risk_learners) == 1
    learner = snap.at_risk_learners[0]
    assert learner.learner_id == "u2"
    assert learner.avg_ratio == pytest.approx(0.18)
    assert learner.sample_count == 5
    assert learner.quiz_attempts == 3


def test_scenario_weak_questions():
    snap = _snapshot()

    assert [(q.quiz_id, q.question_index) for q in snap.weak_questions] == [("q1", 0), ("q1", 1)]
    assert snap.weak_questions[0].accuracy == pytest.approx(1 / 3)
    assert snap.weak_questions[1].accuracy == pytest.approx(2 / 3)
    assert snap.weak_questions[0].prompt == "Prompt q1-0"


def test_scenario_timeline():
    snap = _snapshot()

    assert len(snap.timeline) == 7
    assert snap.timeline[0].day == date(2024, 2, 26)
    assert snap.timeline[-1].day == REFERENCE_DATE
    assert all(row.quiz_attempts == 0 for row in snap.timeline[:4])

    day0, day1, day2 = snap.timeline[4:]
    assert day0.completion_rate_pct == pytest.approx(200 / 3)
    assert day0.quiz_attempts == 1
    assert day0.quiz_avg_score_pct == pytest.approx(100.0)
    assert day1.completion_rate_pct == pytest.approx(45.0)
    assert day1.quiz_avg_score_pct == pytest.approx(200 / 3)
    assert day2.completion_rate_pct == pytest.approx(130 / 3)
    assert day2.quiz_attempts == 2
    assert day2.quiz_avg_score_pct == pytest.approx(100 / 3)
    assert day2.active_learners == frozenset({"u1", "u2"})


def test_scenario_course_and_chapter_insights():
    quizzes = {"q1": QuizInfo("q1", "Fractions", course_id="c1", chapter_id="ch1")}
    snap = _snapshot(quizzes=quizzes)

    assert [c.course_id for c in snap.course_insights] == ["c1", "c2"]
    c1 = snap.course_insights[0]
    assert c1.completion_rate_pct == pytest.approx(360 / 7)
    assert c1.learners == 2
    assert c1.quiz_attempts == 3
    assert snap.course_insights[1].quiz_attempts == 0

    chapters = {c.chapter_id: c for c in snap.chapter_insights}
    assert chapters["ch1"].course_id == "c1"
    assert chapters["ch3"].course_id == "c2"
    assert chapters["ch1"].quiz_attempts == 3


def test_recent_attempts_newest_first():
    snap = _snapshot()
    times = [a.created_at_ms for a in snap.recent_attempts]
    assert times == sorted(times, reverse=True)
    assert len(snap.recent_attempts) == 5


def test_snapshot_is_idempotent():
    assert _snapshot() == _snapshot()


def test_snapshot_does_not_mutate_inputs():
    events, attempts, questions = scenario_events(), scenario_attempts(), scenario_questions()
    before = (list(events), list(attempts), {k: list(v) for k, v in questions.items()})

    build_snapshot(events, attempts, questions, period_days=7, reference_date=REFERENCE_DATE)

    assert (events, attempts, questions) == before


def test_empty_inputs_give_zeroes_and_full_timeline():
    snap = build_snapshot([], [], {}, period_days=30, reference_date=REFERENCE_DATE)

    assert snap.overall.learners == 0
    assert snap.overall.completion_rate_pct == 0.0
    assert snap.overall.quiz_avg_score_pct == 0.0
    assert snap.at_risk_learners == []
    assert snap.weak_questions == []
    assert len(snap.timeline) == 30


def test_config_limits_apply():
    config = replace(DEFAULT_CONFIG, weak_question_limit=1, weak_question_min_attempts=1, at_risk_threshold=0.9)
    snap = _snapshot(config=config)

    assert len(snap.weak_questions) == 1
    assert [l.learner_id for l in snap.at_risk_learners] == ["u2", "u1"]


def test_catalog_ids_zero_fill_courses_and_chapters():
    snap = build_snapshot(
        [],
        [],
        {},
        period_days=1,
        reference_date=REFERENCE_DATE,
        quizzes={"qz": QuizInfo("qz", "Intro")},
        course_ids=["c1", "c2"],
        chapter_ids=["ch1"],
        chapter_courses={"ch1": "c2"},
    )

    assert [c.course_id for c in snap.course_insights] == ["c1", "c2"]
    assert all(c.learners == 0 and c.completion_rate_pct == 0.0 for c in snap.course_insights)
    assert len(snap.chapter_insights) == 1
    assert snap.chapter_insights[0].chapter_id == "ch1"
    assert snap.chapter_insights[0].course_id == "c2"
    assert snap.chapter_insights[0].quiz_attempts == 0


def test_catalog_ids_keep_active_scopes_first():
    quizzes = {"q1": QuizInfo("q1", "Fractions", course_id="c1", chapter_id="ch1")}
    snap = _snapshot(quizzes=quizzes, course_ids=["c9", "c1", "c2"], chapter_ids=["ch1", "ch9"])

    assert [c.course_id for c in snap.course_insights] == ["c1", "c2", "c9"]
    assert [c.chapter_id for c in snap.chapter_insights] == ["ch1", "ch9"]
    assert snap.chapter_insights[0].quiz_attempts == 3


def test_reference_timezone_reaches_progress_and_quiz_days():
    late_evening_utc = DAY0_MS + 23 * 3_600_000 + 30 * 60_000
    config = replace(DEFAULT_CONFIG, timezone="Europe/Paris")

    snap = build_snapshot(
        [ProgressEvent("u1", "c1", "ch1", 600, 600, late_evening_utc)],
        [QuizAttempt("q", "u1", (), 1, 2, late_evening_utc)],
        {"q": []},
        period_days=2,
        reference_date=date(2024, 3, 2),
        config=config,
    )

    first, second = snap.timeline
    assert first.day == date(2024, 3, 1)
    assert first.quiz_attempts == 0
    assert first.completion_rate_pct == 0.0
    assert second.day == date(2024, 3, 2)
    assert second.completion_rate_pct == pytest.approx(100.0)
    assert second.quiz_attempts == 1
    assert second.quiz_avg_score_pct == pytest.approx(50.0)
    assert second.active_learners == frozenset({"u1"})


def test_unusable_timestamps_do_not_raise():
    snap = build_snapshot(
        [ProgressEvent("u1", "c1", "ch1", 300, 600, float("nan"))],
        [QuizAttempt("q", "u1", (), 1, 2, float("inf"))],
        {"q": []},
        period_days=1,
        reference_date=date(1970, 1, 1),
    )

    assert snap.timeline[0].quiz_attempts == 1
    assert snap.timeline[0].completion_rate_pct == pytest.approx(50.0)
    assert snap.recent_attempts[0].created_at_ms == 0
