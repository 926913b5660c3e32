# ABOUTME: Grades quiz attempts against their answer keys and folds per-quiz statistics.
# ABOUTME: Produces per-question, per-day, per-course and per-chapter quiz aggregates.

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, tzinfo
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .day_keys import day_key
from .schemas import (
    DayAggregate,
    QuestionAggregate,
    QuestionDef,
    QuizAggregate,
    QuizAttempt,
    QuizInfo,
    ScopeQuizAggregate,
)

logger = logging.getLogger(__name__)


@dataclass
class QuizScores:
    by_quiz: Dict[str, QuizAggregate] = field(default_factory=dict)
    by_question: Dict[Tuple[str, int], QuestionAggregate] = field(default_factory=dict)
    by_day: Dict[date, DayAggregate] = field(default_factory=dict)
    by_course: Dict[str, ScopeQuizAggregate] = field(default_factory=dict)
    by_chapter: Dict[str, ScopeQuizAggregate] = field(default_factory=dict)
    attempts_by_learner: Dict[str, int] = field(default_factory=dict)
    overall: QuizAggregate = field(default_factory=lambda: QuizAggregate("*"))
    counted: List[QuizAttempt] = field(default_factory=list)


def score_pct(score: float, max_score: float) -> Optional[float]:
    """Percentage score, or None when the attempt has no usable maximum."""

    try:
        top = float(max_score)
        raw = float(score)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(top) or top <= 0:
        return None
    raw = raw if math.isfinite(raw) else 0.0
    return max(0.0, raw) / top * 100.0


def normalize_answer(value) -> Optional[int]:
    """
    Selected option index for one answer slot.

    Lists keep their first element; numeric strings and floats are floored.
    Booleans and anything non-numeric count as unanswered.
    """

    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return int(math.floor(number))


def score_attempts(
    attempts: Iterable[QuizAttempt],
    questions_by_quiz: Mapping[str, Sequence[QuestionDef]],
    quizzes: Optional[Mapping[str, QuizInfo]] = None,
    tz: Optional[tzinfo] = None,
) -> QuizScores:
    """
    Fold attempts into quiz statistics.

    An attempt is counted when its quiz is known, either through question
    definitions or a quiz stub. Attempts for unknown quizzes are dropped.
    """

    quizzes = quizzes or {}
    result = QuizScores()

    for attempt in attempts:
        questions = questions_by_quiz.get(attempt.quiz_id)
        info = quizzes.get(attempt.quiz_id)
        if questions is None and info is None:
            logger.debug("Dropping attempt for unknown quiz %s", attempt.quiz_id)
            continue

        result.counted.append(attempt)
        pct = score_pct(attempt.score, attempt.max_score)

        _fold_quiz(result.overall, pct)
        quiz = result.by_quiz.get(attempt.quiz_id)
        if quiz is None:
            quiz = result.by_quiz[attempt.quiz_id] = QuizAggregate(attempt.quiz_id)
        _fold_quiz(quiz, pct)

        result.attempts_by_learner[attempt.learner_id] = result.attempts_by_learner.get(attempt.learner_id, 0) + 1

        day = day_key(attempt.created_at_ms, tz)
        bucket = result.by_day.get(day)
        if bucket is None:
            bucket = result.by_day[day] = DayAggregate(day)
        bucket.quiz_attempts += 1
        if pct is not None:
            bucket.quiz_score_sum += pct
            bucket.quiz_score_sample_count += 1
        bucket.active_learners.add(attempt.learner_id)

        if info is not None:
            if info.course_id:
                _fold_scope(result.by_course, info.course_id, pct)
            if info.chapter_id:
                _fold_scope(result.by_chapter, info.chapter_id, pct)

        if questions:
            _fold_questions(result.by_question, attempt, questions)

    return result


def _fold_quiz(aggregate: QuizAggregate, pct: Optional[float]) -> None:
    aggregate.attempts += 1
    if pct is None:
        return
    aggregate.score_sum += pct
    aggregate.score_sample_count += 1
    aggregate.best_score_pct = max(aggregate.best_score_pct, pct)


def _fold_scope(scopes: Dict[str, ScopeQuizAggregate], key: str, pct: Optional[float]) -> None:
    scope = scopes.get(key)
    if scope is None:
        scope = scopes[key] = ScopeQuizAggregate(key)
    scope.attempts += 1
    if pct is not None:
        scope.score_sum += pct
        scope.score_sample_count += 1


def _fold_questions(
    by_question: Dict[Tuple[str, int], QuestionAggregate],
    attempt: QuizAttempt,
    questions: Sequence[QuestionDef],
) -> None:
    answers = attempt.answers or ()
    for index, question in enumerate(questions):
        if index >= len(answers):
            break
        if not question.options:
            continue
        selected = normalize_answer(answers[index])
        if selected is None:
            continue
        if not 0 <= selected < len(question.options):
            logger.debug(
                "Ignoring out-of-range answer %s for %s question %d", selected, attempt.quiz_id, index
            )
            continue

        key = (attempt.quiz_id, index)
        aggregate = by_question.get(key)
        if aggregate is None:
            aggregate = by_question[key] = QuestionAggregate(attempt.quiz_id, index)
        aggregate.attempts += 1
        if selected in question.valid_correct_indices():
            aggregate.correct += 1
