# ABOUTME: Computes the full analytics snapshot from progress events and quiz attempts.
# ABOUTME: Pure function shared by teacher consoles, parent trackers and summary jobs.

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

from .at_risk import classify_at_risk, count_at_risk
from .config import DEFAULT_CONFIG, AnalyticsConfig
from .insights import chapter_insights, course_insights, recent_attempts
from .progress_aggregation import aggregate_progress
from .quiz_scoring import score_attempts
from .schemas import (
    LearnerAggregate,
    OverallMetrics,
    ProgressEvent,
    QuestionDef,
    QuizAttempt,
    QuizInfo,
    Snapshot,
)
from .timeline import build_timeline
from .weak_questions import rank_weak_questions


def build_snapshot(
    events: Iterable[ProgressEvent],
    attempts: Iterable[QuizAttempt],
    questions_by_quiz: Mapping[str, Sequence[QuestionDef]],
    period_days: int,
    reference_date: date,
    quizzes: Optional[Mapping[str, QuizInfo]] = None,
    config: Optional[AnalyticsConfig] = None,
    course_ids: Optional[Iterable[str]] = None,
    chapter_ids: Optional[Iterable[str]] = None,
    chapter_courses: Optional[Mapping[str, str]] = None,
) -> Snapshot:
    """
    Aggregate one window of activity into a ``Snapshot``.

    The caller has already scoped ``events`` and ``attempts`` to an owner or
    learner and a time window. Nothing here performs I/O or mutates inputs;
    equal inputs always give an equal snapshot.

    ``course_ids`` and ``chapter_ids`` list the owner's catalog: every listed
    course or chapter gets an insight row, zeroed when it saw no activity.
    ``chapter_courses`` links catalog chapters to their course.
    """

    config = config or DEFAULT_CONFIG
    tz = config.tzinfo
    events = list(events)
    attempts = list(attempts)
    quizzes = quizzes or {}

    progress = aggregate_progress(events, tz=tz, fallback_seconds=config.fallback_duration_seconds)
    scores = score_attempts(attempts, questions_by_quiz, quizzes=quizzes, tz=tz)

    by_learner: Dict[str, LearnerAggregate] = progress.by_learner
    for learner_id, count in scores.attempts_by_learner.items():
        learner = by_learner.get(learner_id)
        if learner is None:
            learner = by_learner[learner_id] = LearnerAggregate(learner_id)
        learner.quiz_attempts = count

    at_risk = classify_at_risk(
        by_learner,
        limit=config.at_risk_limit,
        threshold=config.at_risk_threshold,
        min_samples=config.at_risk_min_samples,
    )
    overall = OverallMetrics(
        learners=len(by_learner),
        completion_rate_pct=100.0 * progress.completion_rate,
        quiz_attempts=scores.overall.attempts,
        quiz_avg_score_pct=scores.overall.avg_score_pct,
        quiz_best_score_pct=scores.overall.best_score_pct,
        at_risk_learners=count_at_risk(
            by_learner, threshold=config.at_risk_threshold, min_samples=config.at_risk_min_samples
        ),
    )

    return Snapshot(
        period_days=period_days,
        reference_date=reference_date,
        overall=overall,
        by_learner=by_learner,
        by_course=progress.by_course,
        by_chapter=progress.by_chapter,
        by_quiz=scores.by_quiz,
        by_question=scores.by_question,
        at_risk_learners=at_risk,
        weak_questions=rank_weak_questions(
            scores.by_question,
            limit=config.weak_question_limit,
            min_attempts=config.weak_question_min_attempts,
            prompts=_question_prompts(questions_by_quiz),
        ),
        course_insights=course_insights(progress.by_course, scores.by_course, course_ids=course_ids),
        chapter_insights=chapter_insights(
            progress.by_chapter,
            scores.by_chapter,
            chapter_courses=_chapter_courses(events, quizzes, chapter_courses),
            limit=config.chapter_insight_limit,
            chapter_ids=chapter_ids,
        ),
        recent_attempts=recent_attempts(scores.counted, limit=config.recent_attempt_limit),
        timeline=build_timeline(progress.by_day, scores.by_day, period_days, reference_date),
    )


def _question_prompts(questions_by_quiz: Mapping[str, Sequence[QuestionDef]]) -> Dict[Tuple[str, int], str]:
    return {
        (quiz_id, index): question.prompt
        for quiz_id, questions in questions_by_quiz.items()
        for index, question in enumerate(questions)
    }


def _chapter_courses(
    events: Sequence[ProgressEvent],
    quizzes: Mapping[str, QuizInfo],
    catalog: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    mapping: Dict[str, str] = dict(catalog or {})
    for event in events:
        mapping.setdefault(event.chapter_id, event.course_id)
    for info in quizzes.values():
        if info.chapter_id and info.course_id:
            mapping.setdefault(info.chapter_id, info.course_id)
    return mapping
