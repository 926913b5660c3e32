# ABOUTME: Tests course, chapter and recent-attempt insight rows.
# ABOUTME: Checks zero-filled courses, stable ordering and per-learner feeds.

import pytest

from src.common.insights import chapter_insights, course_insights, recent_attempts
from src.common.schemas import QuizAttempt, ScopeAggregate, ScopeQuizAggregate


def test_course_insights_zero_fill_requested_courses():
    by_course = {"c1": ScopeAggregate("c1", ratio_sum=1.0, sample_count=2, distinct_learners={"u1"})}
    course_quiz = {"c1": ScopeQuizAggregate("c1", attempts=2, score_sum=150.0, score_sample_count=2)}

    rows = course_insights(by_course, course_quiz, course_ids=["c2", "c1"])

    assert [r.course_id for r in rows] == ["c1", "c2"]
    assert rows[0].completion_rate_pct == pytest.approx(50.0)
    assert rows[0].quiz_avg_score_pct == pytest.approx(75.0)
    assert rows[1].learners == 0
    assert rows[1].quiz_attempts == 0


def test_chapter_insights_ties_and_limit():
    by_chapter = {
        "b": ScopeAggregate("b", ratio_sum=0.5, sample_count=1, distinct_learners={"u1"}),
        "a": ScopeAggregate("a", ratio_sum=0.5, sample_count=1, distinct_learners={"u1"}),
        "c": ScopeAggregate("c", ratio_sum=1.0, sample_count=2, distinct_learners={"u1", "u2"}),
    }

    rows = chapter_insights(by_chapter, {}, chapter_courses={"a": "c1"}, limit=2)

    assert [r.chapter_id for r in rows] == ["c", "a"]
    assert rows[1].course_id == "c1"
    assert rows[0].course_id is None


def test_recent_attempts_filters_learner_and_orders_newest_first():
    attempts = [
        QuizAttempt("q1", "u1", (), 1, 2, 100),
        QuizAttempt("q2", "u2", (), 2, 2, 300),
        QuizAttempt("q3", "u1", (), 3, 0, 200),
    ]

    rows = recent_attempts(attempts, learner_id="u1")

    assert [r.quiz_id for r in rows] == ["q3", "q1"]
    assert rows[0].score_pct == 0.0
    assert rows[1].score_pct == pytest.approx(50.0)
    assert len(recent_attempts(attempts, limit=1)) == 1


def test_chapter_insights_zero_fill_requested_chapters():
    by_chapter = {"a": ScopeAggregate("a", ratio_sum=0.5, sample_count=1, distinct_learners={"u1"})}

    rows = chapter_insights(by_chapter, {}, chapter_courses={"z": "c2"}, chapter_ids=["z", "a", "z"])

    assert [r.chapter_id for r in rows] == ["a", "z"]
    assert rows[1].course_id == "c2"
    assert rows[1].learners == 0
    assert rows[1].completion_rate_pct == 0.0
