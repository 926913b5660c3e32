# ABOUTME: Shapes course, chapter and recent-attempt rows for console tables.
# ABOUTME: Joins progress scopes with quiz rollups and applies stable orderings.

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional

from .day_keys import finite_epoch_ms
from .quiz_scoring import score_pct
from .schemas import (
    ChapterInsight,
    CourseInsight,
    QuizAttempt,
    RecentAttempt,
    ScopeAggregate,
    ScopeQuizAggregate,
)


def _scope_row(progress: Optional[ScopeAggregate], quiz: Optional[ScopeQuizAggregate]):
    return {
        "learners": len(progress.distinct_learners) if progress else 0,
        "completion_rate_pct": 100.0 * progress.completion_rate if progress else 0.0,
        "quiz_attempts": quiz.attempts if quiz else 0,
        "quiz_avg_score_pct": quiz.avg_score_pct if quiz else 0.0,
    }


def course_insights(
    by_course: Mapping[str, ScopeAggregate],
    course_quiz: Mapping[str, ScopeQuizAggregate],
    course_ids: Optional[Iterable[str]] = None,
) -> List[CourseInsight]:
    """
    One row per course, best completion first.

    When ``course_ids`` is given, courses without activity still get a zeroed
    row; otherwise every course seen in progress or quiz data is listed.
    """

    keys = list(course_ids) if course_ids is not None else sorted(set(by_course) | set(course_quiz))
    rows = [
        CourseInsight(course_id=key, **_scope_row(by_course.get(key), course_quiz.get(key)))
        for key in dict.fromkeys(keys)
    ]
    rows.sort(key=lambda r: (-r.completion_rate_pct, -r.learners, r.course_id))
    return rows


def chapter_insights(
    by_chapter: Mapping[str, ScopeAggregate],
    chapter_quiz: Mapping[str, ScopeQuizAggregate],
    chapter_courses: Optional[Mapping[str, str]] = None,
    limit: Optional[int] = 10,
    chapter_ids: Optional[Iterable[str]] = None,
) -> List[ChapterInsight]:
    """Chapter rows ordered like courses; ``chapter_ids`` zero-fills like ``course_ids``."""

    chapter_courses = chapter_courses or {}
    keys = list(dict.fromkeys(chapter_ids)) if chapter_ids is not None else sorted(set(by_chapter) | set(chapter_quiz))
    rows = [
        ChapterInsight(
            chapter_id=key,
            course_id=chapter_courses.get(key),
            **_scope_row(by_chapter.get(key), chapter_quiz.get(key)),
        )
        for key in keys
    ]
    rows.sort(key=lambda r: (-r.completion_rate_pct, -r.learners, r.chapter_id))
    if limit is not None:
        rows = rows[:limit]
    return rows


def recent_attempts(
    attempts: Iterable[QuizAttempt],
    limit: Optional[int] = 10,
    learner_id: Optional[str] = None,
) -> List[RecentAttempt]:
    rows = [
        RecentAttempt(
            quiz_id=a.quiz_id,
            learner_id=a.learner_id,
            score_pct=score_pct(a.score, a.max_score) or 0.0,
            created_at_ms=finite_epoch_ms(a.created_at_ms),
        )
        for a in attempts
        if learner_id is None or a.learner_id == learner_id
    ]
    rows.sort(key=lambda r: (-r.created_at_ms, r.quiz_id, r.learner_id))
    if limit is not None:
        rows = rows[:limit]
    return rows
