# ABOUTME: Ranks quiz questions by observed accuracy for teacher review.
# ABOUTME: Ignores questions answered too rarely for accuracy to mean anything.

from __future__ import annotations

from typing import List, Mapping, Optional, Tuple

from .schemas import QuestionAggregate, WeakQuestion

MIN_ATTEMPTS = 3
DISPLAY_LIMIT = 8


def rank_weak_questions(
    by_question: Mapping[Tuple[str, int], QuestionAggregate],
    limit: Optional[int] = DISPLAY_LIMIT,
    min_attempts: int = MIN_ATTEMPTS,
    prompts: Optional[Mapping[Tuple[str, int], str]] = None,
) -> List[WeakQuestion]:
    """
    Lowest-accuracy questions first.

    Equal accuracy puts the more frequently answered question first, then
    falls back to (quiz_id, question_index) so the order never depends on
    input order.
    """

    prompts = prompts or {}
    ranked = [
        WeakQuestion(
            quiz_id=agg.quiz_id,
            question_index=agg.question_index,
            accuracy=agg.accuracy,
            attempts=agg.attempts,
            prompt=prompts.get((agg.quiz_id, agg.question_index), ""),
        )
        for agg in by_question.values()
        if agg.attempts >= min_attempts
    ]
    ranked.sort(key=lambda q: (q.accuracy, -q.attempts, q.quiz_id, q.question_index))
    if limit is not None:
        ranked = ranked[:limit]
    return ranked
