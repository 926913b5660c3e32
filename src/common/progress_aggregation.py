# ABOUTME: Folds progress events into per-learner, per-course, per-chapter and per-day sums.
# ABOUTME: Single pass over the events; every scope shares the same mean-ratio semantics.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, tzinfo
from typing import Dict, Iterable, Optional

from .day_keys import day_key
from .ratio import FALLBACK_DURATION_SECONDS, completion_ratio
from .schemas import DayAggregate, LearnerAggregate, ProgressEvent, ScopeAggregate


@dataclass
class ProgressAggregates:
    by_learner: Dict[str, LearnerAggregate] = field(default_factory=dict)
    by_course: Dict[str, ScopeAggregate] = field(default_factory=dict)
    by_chapter: Dict[str, ScopeAggregate] = field(default_factory=dict)
    by_day: Dict[date, DayAggregate] = field(default_factory=dict)
    ratio_sum: float = 0.0
    sample_count: int = 0

    @property
    def completion_rate(self) -> float:
        return completion_rate(self.ratio_sum, self.sample_count)


def completion_rate(ratio_sum: float, sample_count: int) -> float:
    """Mean ratio of the events in a scope; 0 for an empty scope."""

    return ratio_sum / sample_count if sample_count > 0 else 0.0


def aggregate_progress(
    events: Iterable[ProgressEvent],
    tz: Optional[tzinfo] = None,
    fallback_seconds: float = FALLBACK_DURATION_SECONDS,
) -> ProgressAggregates:
    """
    Aggregate raw progress events in one pass.

    Steps per event:
    - Compute the clamped completion ratio.
    - Add it to the learner, course and chapter running sums.
    - Add it to the calendar-day bucket in the reference timezone.
    """

    result = ProgressAggregates()
    for event in events:
        ratio = completion_ratio(event.watched_seconds, event.duration_seconds, fallback_seconds)
        result.ratio_sum += ratio
        result.sample_count += 1

        learner = result.by_learner.get(event.learner_id)
        if learner is None:
            learner = result.by_learner[event.learner_id] = LearnerAggregate(event.learner_id)
        learner.ratio_sum += ratio
        learner.sample_count += 1

        _fold_scope(result.by_course, event.course_id, event.learner_id, ratio)
        _fold_scope(result.by_chapter, event.chapter_id, event.learner_id, ratio)

        day = day_key(event.occurred_at_ms, tz)
        bucket = result.by_day.get(day)
        if bucket is None:
            bucket = result.by_day[day] = DayAggregate(day)
        bucket.ratio_sum += ratio
        bucket.ratio_sample_count += 1
        bucket.active_learners.add(event.learner_id)

    return result


def _fold_scope(scopes: Dict[str, ScopeAggregate], key: str, learner_id: str, ratio: float) -> None:
    scope = scopes.get(key)
    if scope is None:
        scope = scopes[key] = ScopeAggregate(key)
    scope.ratio_sum += ratio
    scope.sample_count += 1
    scope.distinct_learners.add(learner_id)
