# ABOUTME: Defines canonical data structures shared by the analytics engine.
# ABOUTME: Centralizes progress, quiz, aggregate and snapshot schema definitions.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, FrozenSet, List, Optional, Set, Tuple


@dataclass(frozen=True)
class ProgressEvent:
    """One observation of how much of a chapter a learner watched."""

    learner_id: str
    course_id: str
    chapter_id: str
    watched_seconds: float
    duration_seconds: Optional[float] = None
    occurred_at_ms: int = 0


@dataclass(frozen=True)
class QuestionDef:
    """Multiple-choice question with its answer key."""

    question_id: str
    prompt: str
    options: Tuple[str, ...]
    correct_option_indices: FrozenSet[int] = frozenset()

    def valid_correct_indices(self) -> FrozenSet[int]:
        return frozenset(i for i in self.correct_option_indices if 0 <= i < len(self.options))


@dataclass(frozen=True)
class QuizAttempt:
    """Learner submission; answers hold one slot per question, None if unanswered."""

    quiz_id: str
    learner_id: str
    answers: Tuple[object, ...] = ()
    score: float = 0.0
    max_score: float = 0.0
    created_at_ms: int = 0


@dataclass(frozen=True)
class QuizInfo:
    """Quiz-level stub linking a quiz to its course or chapter."""

    quiz_id: str
    title: str = ""
    course_id: Optional[str] = None
    chapter_id: Optional[str] = None


@dataclass
class LearnerAggregate:
    learner_id: str
    ratio_sum: float = 0.0
    sample_count: int = 0
    quiz_attempts: int = 0

    @property
    def avg_ratio(self) -> float:
        return self.ratio_sum / self.sample_count if self.sample_count > 0 else 0.0


@dataclass
class ScopeAggregate:
    """Progress sums for one course or one chapter."""

    key: str
    ratio_sum: float = 0.0
    sample_count: int = 0
    distinct_learners: Set[str] = field(default_factory=set)

    @property
    def completion_rate(self) -> float:
        return self.ratio_sum / self.sample_count if self.sample_count > 0 else 0.0


@dataclass
class QuizAggregate:
    quiz_id: str
    attempts: int = 0
    score_sum: float = 0.0
    score_sample_count: int = 0
    best_score_pct: float = 0.0

    @property
    def avg_score_pct(self) -> float:
        return self.score_sum / self.score_sample_count if self.score_sample_count > 0 else 0.0


@dataclass
class ScopeQuizAggregate:
    """Quiz attempts rolled up to a course or chapter."""

    key: str
    attempts: int = 0
    score_sum: float = 0.0
    score_sample_count: int = 0

    @property
    def avg_score_pct(self) -> float:
        return self.score_sum / self.score_sample_count if self.score_sample_count > 0 else 0.0


@dataclass
class QuestionAggregate:
    quiz_id: str
    question_index: int
    attempts: int = 0
    correct: int = 0

    @property
    def accuracy(self) -> float:
        return self.correct / self.attempts if self.attempts > 0 else 0.0


@dataclass
class DayAggregate:
    day: date
    ratio_sum: float = 0.0
    ratio_sample_count: int = 0
    quiz_attempts: int = 0
    quiz_score_sum: float = 0.0
    quiz_score_sample_count: int = 0
    active_learners: Set[str] = field(default_factory=set)


@dataclass(frozen=True)
class DaySnapshot:
    day: date
    completion_rate_pct: float
    quiz_attempts: int
    quiz_avg_score_pct: float
    active_learners: FrozenSet[str]


@dataclass(frozen=True)
class AtRiskLearner:
    learner_id: str
    avg_ratio: float
    sample_count: int
    quiz_attempts: int = 0


@dataclass(frozen=True)
class WeakQuestion:
    quiz_id: str
    question_index: int
    accuracy: float
    attempts: int
    prompt: str = ""


@dataclass(frozen=True)
class CourseInsight:
    course_id: str
    learners: int
    completion_rate_pct: float
    quiz_attempts: int
    quiz_avg_score_pct: float


@dataclass(frozen=True)
class ChapterInsight:
    chapter_id: str
    course_id: Optional[str]
    learners: int
    completion_rate_pct: float
    quiz_attempts: int
    quiz_avg_score_pct: float


@dataclass(frozen=True)
class RecentAttempt:
    quiz_id: str
    learner_id: str
    score_pct: float
    created_at_ms: int


@dataclass(frozen=True)
class OverallMetrics:
    learners: int
    completion_rate_pct: float
    quiz_attempts: int
    quiz_avg_score_pct: float
    quiz_best_score_pct: float
    at_risk_learners: int


@dataclass(frozen=True)
class Snapshot:
    """Full output of one aggregation call."""

    period_days: int
    reference_date: date
    overall: OverallMetrics
    by_learner: Dict[str, LearnerAggregate]
    by_course: Dict[str, ScopeAggregate]
    by_chapter: Dict[str, ScopeAggregate]
    by_quiz: Dict[str, QuizAggregate]
    by_question: Dict[Tuple[str, int], QuestionAggregate]
    at_risk_learners: List[AtRiskLearner]
    weak_questions: List[WeakQuestion]
    course_insights: List[CourseInsight]
    chapter_insights: List[ChapterInsight]
    recent_attempts: List[RecentAttempt]
    timeline: List[DaySnapshot]
