# ABOUTME: Serializes snapshots into chart-ready JSON payloads and parquet tables.
# ABOUTME: Keeps the {data, metadata} envelope the dashboard loaders expect.

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict

from .frames import snapshot_tables
from .schemas import Snapshot

logger = logging.getLogger(__name__)


def snapshot_to_dict(snapshot: Snapshot) -> Dict[str, Any]:
    """
    Convert a snapshot into plain JSON types.

    Dates become ISO strings and learner sets become sorted lists; the
    per-entity aggregate maps are left out in favour of the ranked tables.
    """

    timeline = [
        {
            "day": row.day.isoformat(),
            "completion_rate_pct": row.completion_rate_pct,
            "quiz_attempts": row.quiz_attempts,
            "quiz_avg_score_pct": row.quiz_avg_score_pct,
            "active_learners": sorted(row.active_learners),
        }
        for row in snapshot.timeline
    ]

    return {
        "data": {
            "overall": asdict(snapshot.overall),
            "at_risk_learners": [asdict(r) for r in snapshot.at_risk_learners],
            "weak_questions": [asdict(q) for q in snapshot.weak_questions],
            "course_insights": [asdict(c) for c in snapshot.course_insights],
            "chapter_insights": [asdict(c) for c in snapshot.chapter_insights],
            "recent_attempts": [asdict(a) for a in snapshot.recent_attempts],
            "timeline": timeline,
        },
        "metadata": {
            "period_days": snapshot.period_days,
            "reference_date": snapshot.reference_date.isoformat(),
            "learners": len(snapshot.by_learner),
            "courses": len(snapshot.by_course),
            "chapters": len(snapshot.by_chapter),
            "quizzes": len(snapshot.by_quiz),
        },
    }


def write_snapshot(snapshot: Snapshot, output_dir: Path) -> Dict[str, Path]:
    """Write ``snapshot.json`` and one parquet file per table; returns the written paths."""

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    written: Dict[str, Path] = {}
    json_path = output_dir / "snapshot.json"
    json_path.write_text(json.dumps(snapshot_to_dict(snapshot), indent=2), encoding="utf-8")
    written["snapshot"] = json_path

    for name, table in snapshot_tables(snapshot).items():
        path = output_dir / f"{name}.parquet"
        table.to_parquet(path, index=False)
        written[name] = path

    logger.info("Wrote %d snapshot artifacts to %s", len(written), output_dir)
    return written
