# ABOUTME: Recomputes dashboard counters at weekly grain for backend summary jobs.
# ABOUTME: Reuses the engine's ratio formula, day-key timezone and known-quiz filter.

from __future__ import annotations

from typing import Iterable, Optional

import numpy as np
import pandas as pd

from .ratio import FALLBACK_DURATION_SECONDS, completion_ratios

SUMMARY_COLUMNS = [
    "week_start",
    "events",
    "completion_rate_pct",
    "active_learners",
    "quiz_attempts",
    "quiz_avg_score_pct",
]


def _local_days(epoch_ms: pd.Series, tz: str) -> pd.Series:
    numeric = pd.to_numeric(epoch_ms, errors="coerce").replace([np.inf, -np.inf], np.nan).fillna(0)
    stamps = pd.to_datetime(numeric, unit="ms", utc=True, errors="coerce").fillna(pd.Timestamp(0, tz="UTC"))
    return stamps.dt.tz_convert(tz).dt.tz_localize(None).dt.normalize()


def _numeric_column(df: pd.DataFrame, name: str) -> pd.Series:
    if name not in df.columns:
        return pd.Series(0.0, index=df.index)
    return pd.to_numeric(df[name], errors="coerce").fillna(0.0)


def _week_start(days: pd.Series) -> pd.Series:
    return days - pd.to_timedelta(days.dt.weekday, unit="D")


def weekly_summary(
    events_df: pd.DataFrame,
    attempts_df: pd.DataFrame,
    tz: str = "UTC",
    fallback_seconds: float = FALLBACK_DURATION_SECONDS,
    quiz_ids: Optional[Iterable[str]] = None,
) -> pd.DataFrame:
    """
    Aggregate raw progress and attempt rows into ISO weeks (Monday start).

    Expected columns follow the engine frames: ``learner_id``,
    ``watched_seconds``, ``duration_seconds``, ``occurred_at_ms`` for events and
    ``learner_id``, ``score``, ``max_score``, ``created_at_ms`` for attempts.
    Attempts with ``max_score <= 0`` count as attempts but not in averages.
    When ``quiz_ids`` is given, attempts for other quizzes are dropped the
    same way the engine drops attempts for unknown quizzes.
    """

    empty_events = events_df is None or events_df.empty
    if attempts_df is not None and quiz_ids is not None and "quiz_id" in attempts_df.columns:
        known = {str(q) for q in quiz_ids}
        attempts_df = attempts_df[attempts_df["quiz_id"].astype(str).isin(known)]
    empty_attempts = attempts_df is None or attempts_df.empty
    if empty_events and empty_attempts:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)

    frames = []
    if not empty_events:
        events = events_df.copy()
        duration = events["duration_seconds"] if "duration_seconds" in events.columns else None
        events["ratio"] = completion_ratios(
            pd.to_numeric(events["watched_seconds"], errors="coerce"),
            pd.to_numeric(duration, errors="coerce") if duration is not None else float("nan"),
            fallback_seconds,
        )
        events["week_start"] = _week_start(_local_days(events["occurred_at_ms"], tz))
        frames.append(events[["week_start", "learner_id", "ratio"]].assign(kind="progress"))

    if not empty_attempts:
        attempts = attempts_df.copy()
        score = _numeric_column(attempts, "score").clip(lower=0.0)
        max_score = _numeric_column(attempts, "max_score")
        attempts["score_pct"] = (score / max_score.where(max_score > 0)) * 100.0
        attempts["week_start"] = _week_start(_local_days(attempts["created_at_ms"], tz))
        frames.append(attempts[["week_start", "learner_id", "score_pct"]].assign(kind="quiz"))

    combined = pd.concat(frames, ignore_index=True, sort=False)
    if "ratio" not in combined.columns:
        combined["ratio"] = float("nan")
    if "score_pct" not in combined.columns:
        combined["score_pct"] = float("nan")
    combined["is_progress"] = combined["kind"] == "progress"
    combined["is_quiz"] = combined["kind"] == "quiz"

    grouped = (
        combined.groupby("week_start")
        .agg(
            events=("is_progress", "sum"),
            completion_mean=("ratio", "mean"),
            active_learners=("learner_id", "nunique"),
            quiz_attempts=("is_quiz", "sum"),
            quiz_avg_score_pct=("score_pct", "mean"),
        )
        .reset_index()
        .sort_values("week_start", kind="mergesort")
    )
    grouped["completion_rate_pct"] = grouped["completion_mean"].fillna(0.0) * 100.0
    grouped["quiz_avg_score_pct"] = grouped["quiz_avg_score_pct"].fillna(0.0)
    grouped["events"] = grouped["events"].astype(int)
    grouped["quiz_attempts"] = grouped["quiz_attempts"].astype(int)
    grouped["week_start"] = grouped["week_start"].dt.date
    return grouped[SUMMARY_COLUMNS].reset_index(drop=True)
