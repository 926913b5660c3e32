# ABOUTME: Flags learners whose mean completion ratio stays low over enough samples.
# ABOUTME: Orders flagged learners worst first with a deterministic tie-break.

from __future__ import annotations

from typing import List, Mapping, Optional

from .schemas import AtRiskLearner, LearnerAggregate


class RiskThresholds:
    AVG_RATIO = 0.4
    MIN_SAMPLES = 2
    DISPLAY_LIMIT = 8


def is_at_risk(
    aggregate: LearnerAggregate,
    threshold: float = RiskThresholds.AVG_RATIO,
    min_samples: int = RiskThresholds.MIN_SAMPLES,
) -> bool:
    # A single low sample is noise, not a pattern.
    if aggregate.sample_count < min_samples:
        return False
    return aggregate.avg_ratio < threshold


def classify_at_risk(
    by_learner: Mapping[str, LearnerAggregate],
    limit: Optional[int] = RiskThresholds.DISPLAY_LIMIT,
    threshold: float = RiskThresholds.AVG_RATIO,
    min_samples: int = RiskThresholds.MIN_SAMPLES,
) -> List[AtRiskLearner]:
    flagged = [
        AtRiskLearner(
            learner_id=agg.learner_id,
            avg_ratio=agg.avg_ratio,
            sample_count=agg.sample_count,
            quiz_attempts=agg.quiz_attempts,
        )
        for agg in by_learner.values()
        if is_at_risk(agg, threshold, min_samples)
    ]
    flagged.sort(key=lambda learner: (learner.avg_ratio, learner.learner_id))
    if limit is not None:
        flagged = flagged[:limit]
    return flagged


def count_at_risk(
    by_learner: Mapping[str, LearnerAggregate],
    threshold: float = RiskThresholds.AVG_RATIO,
    min_samples: int = RiskThresholds.MIN_SAMPLES,
) -> int:
    return sum(1 for agg in by_learner.values() if is_at_risk(agg, threshold, min_samples))
