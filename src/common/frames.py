# ABOUTME: Converts tabular exports (parquet, CSV, JSON) to engine records and back.
# ABOUTME: Validates required columns and normalizes missing values at the boundary.

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .schemas import ProgressEvent, QuestionDef, QuizAttempt, QuizInfo, Snapshot

EVENT_COLUMNS = ["learner_id", "course_id", "chapter_id", "watched_seconds", "duration_seconds", "occurred_at_ms"]
ATTEMPT_COLUMNS = ["quiz_id", "learner_id", "answers", "score", "max_score", "created_at_ms"]
QUESTION_COLUMNS = ["quiz_id", "question_index", "prompt", "options", "correct_option_indices"]
QUIZ_COLUMNS = ["quiz_id", "title", "course_id", "chapter_id"]


def read_table(path: Path) -> pd.DataFrame:
    suffix = path.suffix.lower()
    if suffix == ".parquet":
        return pd.read_parquet(path)
    if suffix == ".csv":
        return pd.read_csv(path)
    if suffix in (".json", ".jsonl"):
        return pd.read_json(path, lines=suffix == ".jsonl")
    raise ValueError(f"Unsupported table format '{path.suffix}' for {path}.")


def _require(df: pd.DataFrame, columns: Sequence[str], label: str) -> None:
    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise ValueError(f"Missing required {label} column(s): {', '.join(missing)}")


def _optional(value):
    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    return value


def _float_or_none(value) -> Optional[float]:
    value = _optional(value)
    return None if value is None else float(value)


def _as_list(value) -> List:
    """Accept Python lists, numpy arrays or JSON-encoded strings."""

    value = _optional(value)
    if value is None:
        return []
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        parsed = json.loads(text)
        return parsed if isinstance(parsed, list) else [parsed]
    if hasattr(value, "tolist"):
        value = value.tolist()
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def events_from_frame(df: pd.DataFrame) -> List[ProgressEvent]:
    _require(df, ["learner_id", "course_id", "chapter_id", "watched_seconds", "occurred_at_ms"], "progress")
    frame = df.copy()
    if "duration_seconds" not in frame.columns:
        frame["duration_seconds"] = None
    frame["watched_seconds"] = pd.to_numeric(frame["watched_seconds"], errors="coerce").fillna(0.0)
    frame["duration_seconds"] = pd.to_numeric(frame["duration_seconds"], errors="coerce")
    frame["occurred_at_ms"] = pd.to_numeric(frame["occurred_at_ms"], errors="coerce").fillna(0).astype("int64")

    return [
        ProgressEvent(
            learner_id=str(row.learner_id),
            course_id=str(row.course_id),
            chapter_id=str(row.chapter_id),
            watched_seconds=float(row.watched_seconds),
            duration_seconds=_float_or_none(row.duration_seconds),
            occurred_at_ms=int(row.occurred_at_ms),
        )
        for row in frame.itertuples(index=False)
    ]


def attempts_from_frame(df: pd.DataFrame) -> List[QuizAttempt]:
    _require(df, ["quiz_id", "learner_id", "created_at_ms"], "attempt")
    frame = df.copy()
    for col in ("answers", "score", "max_score"):
        if col not in frame.columns:
            frame[col] = None
    frame["score"] = pd.to_numeric(frame["score"], errors="coerce").fillna(0.0)
    frame["max_score"] = pd.to_numeric(frame["max_score"], errors="coerce").fillna(0.0)
    frame["created_at_ms"] = pd.to_numeric(frame["created_at_ms"], errors="coerce").fillna(0).astype("int64")

    return [
        QuizAttempt(
            quiz_id=str(row.quiz_id),
            learner_id=str(row.learner_id),
            answers=tuple(_optional(a) for a in _as_list(row.answers)),
            score=float(row.score),
            max_score=float(row.max_score),
            created_at_ms=int(row.created_at_ms),
        )
        for row in frame.itertuples(index=False)
    ]


def questions_from_frame(df: pd.DataFrame) -> Dict[str, List[QuestionDef]]:
    """
    Group question rows into per-quiz lists positioned by ``question_index``.

    Answer slot ``i`` of an attempt is graded against the question stored at
    index ``i``, so gaps (a deleted question) are filled with option-less
    placeholders that grading skips. ``correct_option_indices`` may hold a list
    or a single integer.
    """

    _require(df, ["quiz_id", "question_index", "options", "correct_option_indices"], "question")
    frame = df.copy()
    if "prompt" not in frame.columns:
        frame["prompt"] = ""
    frame["question_index"] = pd.to_numeric(frame["question_index"], errors="coerce")
    invalid = frame["question_index"].isna() | (frame["question_index"] < 0)
    invalid |= frame["question_index"].fillna(0) % 1 != 0
    if invalid.any():
        raise ValueError("Column question_index must hold non-negative integers.")
    frame["question_index"] = frame["question_index"].astype("int64")
    if frame.duplicated(["quiz_id", "question_index"]).any():
        raise ValueError("Duplicate (quiz_id, question_index) rows in question table.")
    if "question_id" not in frame.columns:
        frame["question_id"] = frame["quiz_id"].astype(str) + ":" + frame["question_index"].astype(str)

    by_index: Dict[str, Dict[int, QuestionDef]] = {}
    for row in frame.itertuples(index=False):
        correct = frozenset(int(v) for v in _as_list(row.correct_option_indices) if _optional(v) is not None)
        by_index.setdefault(str(row.quiz_id), {})[int(row.question_index)] = QuestionDef(
            question_id=str(row.question_id),
            prompt=str(_optional(row.prompt) or ""),
            options=tuple(str(o) for o in _as_list(row.options)),
            correct_option_indices=correct,
        )

    result: Dict[str, List[QuestionDef]] = {}
    for quiz_id in sorted(by_index):
        slots = by_index[quiz_id]
        result[quiz_id] = [
            slots.get(index, QuestionDef(question_id=f"{quiz_id}:{index}", prompt="", options=()))
            for index in range(max(slots) + 1)
        ]
    return result


def quizzes_from_frame(df: Optional[pd.DataFrame]) -> Dict[str, QuizInfo]:
    if df is None or df.empty:
        return {}
    _require(df, ["quiz_id"], "quiz")
    frame = df.copy()
    for col in ("title", "course_id", "chapter_id"):
        if col not in frame.columns:
            frame[col] = None

    result: Dict[str, QuizInfo] = {}
    for row in frame.itertuples(index=False):
        course_id = _optional(row.course_id)
        chapter_id = _optional(row.chapter_id)
        result[str(row.quiz_id)] = QuizInfo(
            quiz_id=str(row.quiz_id),
            title=str(_optional(row.title) or ""),
            course_id=str(course_id) if course_id is not None else None,
            chapter_id=str(chapter_id) if chapter_id is not None else None,
        )
    return result


def catalog_from_frame(df: Optional[pd.DataFrame]) -> Dict[str, List[str]]:
    """
    Owner catalog as ``{course_id: [chapter_id, ...]}`` in table order.

    Rows without a ``chapter_id`` list a course that has no chapters yet.
    """

    if df is None or df.empty:
        return {}
    _require(df, ["course_id"], "catalog")
    frame = df.copy()
    if "chapter_id" not in frame.columns:
        frame["chapter_id"] = None

    catalog: Dict[str, List[str]] = {}
    for row in frame.itertuples(index=False):
        course_id = _optional(row.course_id)
        if course_id is None:
            continue
        chapters = catalog.setdefault(str(course_id), [])
        chapter_id = _optional(row.chapter_id)
        if chapter_id is not None and str(chapter_id) not in chapters:
            chapters.append(str(chapter_id))
    return catalog


def snapshot_tables(snapshot: Snapshot) -> Dict[str, pd.DataFrame]:
    """Flatten a snapshot into one DataFrame per table for display or export."""

    overall = pd.DataFrame([asdict(snapshot.overall)])
    learners = pd.DataFrame(
        [
            {
                "learner_id": agg.learner_id,
                "ratio_sum": agg.ratio_sum,
                "sample_count": agg.sample_count,
                "avg_ratio": agg.avg_ratio,
                "quiz_attempts": agg.quiz_attempts,
            }
            for agg in sorted(snapshot.by_learner.values(), key=lambda a: a.learner_id)
        ],
        columns=["learner_id", "ratio_sum", "sample_count", "avg_ratio", "quiz_attempts"],
    )
    quizzes = pd.DataFrame(
        [
            {
                "quiz_id": agg.quiz_id,
                "attempts": agg.attempts,
                "avg_score_pct": agg.avg_score_pct,
                "best_score_pct": agg.best_score_pct,
            }
            for agg in sorted(snapshot.by_quiz.values(), key=lambda a: a.quiz_id)
        ],
        columns=["quiz_id", "attempts", "avg_score_pct", "best_score_pct"],
    )
    questions = pd.DataFrame(
        [
            {
                "quiz_id": agg.quiz_id,
                "question_index": agg.question_index,
                "attempts": agg.attempts,
                "correct": agg.correct,
                "accuracy": agg.accuracy,
            }
            for _, agg in sorted(snapshot.by_question.items())
        ],
        columns=["quiz_id", "question_index", "attempts", "correct", "accuracy"],
    )
    timeline = pd.DataFrame(
        [
            {
                "day": row.day.isoformat(),
                "completion_rate_pct": row.completion_rate_pct,
                "quiz_attempts": row.quiz_attempts,
                "quiz_avg_score_pct": row.quiz_avg_score_pct,
                "active_learners": len(row.active_learners),
            }
            for row in snapshot.timeline
        ],
        columns=["day", "completion_rate_pct", "quiz_attempts", "quiz_avg_score_pct", "active_learners"],
    )

    return {
        "overall": overall,
        "learners": learners,
        "courses": _records_frame(snapshot.course_insights, ["course_id", "learners", "completion_rate_pct", "quiz_attempts", "quiz_avg_score_pct"]),
        "chapters": _records_frame(snapshot.chapter_insights, ["chapter_id", "course_id", "learners", "completion_rate_pct", "quiz_attempts", "quiz_avg_score_pct"]),
        "quizzes": quizzes,
        "questions": questions,
        "at_risk": _records_frame(snapshot.at_risk_learners, ["learner_id", "avg_ratio", "sample_count", "quiz_attempts"]),
        "weak_questions": _records_frame(snapshot.weak_questions, ["quiz_id", "question_index", "accuracy", "attempts", "prompt"]),
        "timeline": timeline,
        "recent_attempts": _records_frame(snapshot.recent_attempts, ["quiz_id", "learner_id", "score_pct", "created_at_ms"]),
    }


def _records_frame(records, columns: List[str]) -> pd.DataFrame:
    return pd.DataFrame([asdict(r) for r in records], columns=columns)
