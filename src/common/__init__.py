# ABOUTME: Makes the analytics engine importable by consoles, trackers and jobs.
# ABOUTME: Re-exports schema types and the snapshot entrypoint for convenience.

from .schemas import ProgressEvent, QuestionDef, QuizAttempt, QuizInfo, Snapshot
from .config import AnalyticsConfig, load_config
from .ratio import completion_ratio
from .engine import build_snapshot

__all__ = [
    "AnalyticsConfig",
    "ProgressEvent",
    "QuestionDef",
    "QuizAttempt",
    "QuizInfo",
    "Snapshot",
    "build_snapshot",
    "completion_ratio",
    "load_config",
]
