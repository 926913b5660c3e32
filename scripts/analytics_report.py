# ABOUTME: Provides a CLI that renders learner-progress and quiz analytics snapshots.
# ABOUTME: Reads exported progress/attempt/question tables and prints KPIs, rankings and timelines.

from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from src.common.config import AnalyticsConfig, load_config
from src.common.day_keys import today
from src.common.engine import build_snapshot
from src.common.export import write_snapshot
from src.common.frames import (
    attempts_from_frame,
    catalog_from_frame,
    events_from_frame,
    questions_from_frame,
    quizzes_from_frame,
    read_table,
)
from src.common.schemas import Snapshot
from src.common.snapshot_cache import SnapshotCache, snapshot_key
from src.common.summary import weekly_summary

console = Console()
app = typer.Typer(help="Aggregate watch-time and quiz attempts into teacher and parent analytics.")
SNAPSHOT_CACHE = SnapshotCache()

EVENTS_OPTION = typer.Option(Path("data/lesson_progress.parquet"), "--events-path", help="Progress events table.")
ATTEMPTS_OPTION = typer.Option(Path("data/quiz_attempts.parquet"), "--attempts-path", help="Quiz attempts table.")
QUESTIONS_OPTION = typer.Option(Path("data/quiz_questions.parquet"), "--questions-path", help="Question definitions table.")
QUIZZES_OPTION = typer.Option(None, "--quizzes-path", help="Optional quiz stubs (quiz_id, title, course_id, chapter_id).")
CATALOG_OPTION = typer.Option(
    None, "--catalog-path", help="Optional owner catalog (course_id, chapter_id); listed scopes get zero-filled rows."
)
CONFIG_OPTION = typer.Option(None, "--config", help="Analytics config YAML.")
PERIOD_OPTION = typer.Option(7, "--period-days", min=1, help="Number of days in the timeline.")
REFERENCE_OPTION = typer.Option(None, "--reference-date", help="Last timeline day (YYYY-MM-DD); defaults to today.")


def _load_config(config_path: Optional[Path]) -> AnalyticsConfig:
    try:
        return load_config(config_path)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--config") from exc


def _require_file(path: Path) -> Path:
    if not path.exists():
        console.print(f"[red]Missing input table at {path}[/red]")
        raise typer.Exit(code=1)
    return path


def _reference_date(raw: Optional[str], config: AnalyticsConfig) -> date:
    if not raw:
        return today(config.tzinfo)
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid date '{raw}'.", param_hint="--reference-date") from exc


def _scope_id(paths: List[Path], config: AnalyticsConfig) -> str:
    stamps = [f"{p.resolve()}@{p.stat().st_mtime_ns}" for p in paths]
    return "|".join(stamps + [repr(config)])


def _catalog_scopes(catalog: Optional[Dict[str, List[str]]]) -> Dict[str, Any]:
    if not catalog:
        return {}
    return {
        "course_ids": list(catalog),
        "chapter_ids": [chapter for chapters in catalog.values() for chapter in chapters],
        "chapter_courses": {chapter: course for course, chapters in catalog.items() for chapter in chapters},
    }


def _compute(
    events_path: Path,
    attempts_path: Path,
    questions_path: Path,
    quizzes_path: Optional[Path],
    catalog_path: Optional[Path],
    config: AnalyticsConfig,
    period_days: int,
    reference_date: date,
) -> Snapshot:
    paths = [_require_file(p) for p in (events_path, attempts_path, questions_path, quizzes_path, catalog_path) if p]
    key = snapshot_key(_scope_id(paths, config), period_days, reference_date)

    def build() -> Snapshot:
        try:
            events = events_from_frame(read_table(events_path))
            attempts = attempts_from_frame(read_table(attempts_path))
            questions = questions_from_frame(read_table(questions_path))
            quizzes = quizzes_from_frame(read_table(quizzes_path)) if quizzes_path else {}
            catalog = catalog_from_frame(read_table(catalog_path)) if catalog_path else None
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc

        return build_snapshot(
            events,
            attempts,
            questions,
            period_days=period_days,
            reference_date=reference_date,
            quizzes=quizzes,
            config=config,
            **_catalog_scopes(catalog),
        )

    return SNAPSHOT_CACHE.get_or_build(key, build)


def _print_overall(snapshot: Snapshot) -> None:
    overall = snapshot.overall
    table = Table(show_header=True, header_style="bold magenta")
    for column in ("Learners", "Completion", "Quiz attempts", "Quiz avg", "Quiz best", "At risk"):
        table.add_column(column)
    table.add_row(
        str(overall.learners),
        f"{overall.completion_rate_pct:.1f}%",
        str(overall.quiz_attempts),
        f"{overall.quiz_avg_score_pct:.1f}%",
        f"{overall.quiz_best_score_pct:.1f}%",
        str(overall.at_risk_learners),
    )
    console.print(table)


def _print_at_risk(snapshot: Snapshot) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Learner")
    table.add_column("Avg ratio")
    table.add_column("Samples")
    table.add_column("Quiz attempts")
    for learner in snapshot.at_risk_learners:
        table.add_row(learner.learner_id, f"{learner.avg_ratio:.2f}", str(learner.sample_count), str(learner.quiz_attempts))
    console.print(table)


def _print_weak_questions(snapshot: Snapshot) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Quiz")
    table.add_column("#")
    table.add_column("Prompt")
    table.add_column("Accuracy")
    table.add_column("Attempts")
    for question in snapshot.weak_questions:
        table.add_row(
            question.quiz_id,
            str(question.question_index + 1),
            question.prompt,
            f"{question.accuracy * 100:.0f}%",
            str(question.attempts),
        )
    console.print(table)


def _print_timeline(snapshot: Snapshot) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Day")
    table.add_column("Completion")
    table.add_column("Quiz attempts")
    table.add_column("Quiz avg")
    table.add_column("Active learners")
    for row in snapshot.timeline:
        table.add_row(
            row.day.isoformat(),
            f"{row.completion_rate_pct:.1f}%",
            str(row.quiz_attempts),
            f"{row.quiz_avg_score_pct:.1f}%",
            str(len(row.active_learners)),
        )
    console.print(table)


def _print_courses(snapshot: Snapshot) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    for column in ("Course", "Learners", "Completion", "Quiz attempts", "Quiz avg"):
        table.add_column(column)
    for row in snapshot.course_insights:
        table.add_row(
            row.course_id,
            str(row.learners),
            f"{row.completion_rate_pct:.1f}%",
            str(row.quiz_attempts),
            f"{row.quiz_avg_score_pct:.1f}%",
        )
    console.print(table)


@app.command()
def snapshot(
    events_path: Path = EVENTS_OPTION,
    attempts_path: Path = ATTEMPTS_OPTION,
    questions_path: Path = QUESTIONS_OPTION,
    quizzes_path: Optional[Path] = QUIZZES_OPTION,
    catalog_path: Optional[Path] = CATALOG_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
    period_days: int = PERIOD_OPTION,
    reference_date: Optional[str] = REFERENCE_OPTION,
) -> None:
    """
    Print overview KPIs, course table, at-risk learners, weak questions and the daily timeline.
    """
    config = _load_config(config_path)
    ref = _reference_date(reference_date, config)
    snap = _compute(events_path, attempts_path, questions_path, quizzes_path, catalog_path, config, period_days, ref)

    console.rule("[bold blue]Learning Analytics Snapshot[/bold blue]")
    console.print(f"[bold]Window:[/] {period_days} days ending {ref.isoformat()} ({config.timezone})")
    console.print()
    _print_overall(snap)
    console.print()
    console.print("[bold green]Courses[/bold green]")
    _print_courses(snap)
    console.print()
    console.print("[bold red]At-risk learners[/bold red]")
    _print_at_risk(snap)
    console.print()
    console.print("[bold yellow]Weak questions[/bold yellow]")
    _print_weak_questions(snap)
    console.print()
    console.print("[bold cyan]Timeline[/bold cyan]")
    _print_timeline(snap)


@app.command("at-risk")
def at_risk(
    events_path: Path = EVENTS_OPTION,
    attempts_path: Path = ATTEMPTS_OPTION,
    questions_path: Path = QUESTIONS_OPTION,
    quizzes_path: Optional[Path] = QUIZZES_OPTION,
    catalog_path: Optional[Path] = CATALOG_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
    period_days: int = PERIOD_OPTION,
    reference_date: Optional[str] = REFERENCE_OPTION,
) -> None:
    """
    List learners whose mean completion ratio is below the at-risk threshold.
    """
    config = _load_config(config_path)
    ref = _reference_date(reference_date, config)
    snap = _compute(events_path, attempts_path, questions_path, quizzes_path, catalog_path, config, period_days, ref)
    if not snap.at_risk_learners:
        console.print("[green]No at-risk learners in this window[/green]")
        return
    _print_at_risk(snap)


@app.command("weak-questions")
def weak_questions(
    events_path: Path = EVENTS_OPTION,
    attempts_path: Path = ATTEMPTS_OPTION,
    questions_path: Path = QUESTIONS_OPTION,
    quizzes_path: Optional[Path] = QUIZZES_OPTION,
    catalog_path: Optional[Path] = CATALOG_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
    period_days: int = PERIOD_OPTION,
    reference_date: Optional[str] = REFERENCE_OPTION,
) -> None:
    """
    Rank quiz questions by accuracy, lowest first.
    """
    config = _load_config(config_path)
    ref = _reference_date(reference_date, config)
    snap = _compute(events_path, attempts_path, questions_path, quizzes_path, catalog_path, config, period_days, ref)
    _print_weak_questions(snap)


@app.command()
def timeline(
    events_path: Path = EVENTS_OPTION,
    attempts_path: Path = ATTEMPTS_OPTION,
    questions_path: Path = QUESTIONS_OPTION,
    quizzes_path: Optional[Path] = QUIZZES_OPTION,
    catalog_path: Optional[Path] = CATALOG_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
    period_days: int = PERIOD_OPTION,
    reference_date: Optional[str] = REFERENCE_OPTION,
) -> None:
    """
    Print the gap-filled daily series.
    """
    config = _load_config(config_path)
    ref = _reference_date(reference_date, config)
    snap = _compute(events_path, attempts_path, questions_path, quizzes_path, catalog_path, config, period_days, ref)
    _print_timeline(snap)


@app.command()
def export(
    events_path: Path = EVENTS_OPTION,
    attempts_path: Path = ATTEMPTS_OPTION,
    questions_path: Path = QUESTIONS_OPTION,
    quizzes_path: Optional[Path] = QUIZZES_OPTION,
    catalog_path: Optional[Path] = CATALOG_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
    period_days: int = PERIOD_OPTION,
    reference_date: Optional[str] = REFERENCE_OPTION,
    output_dir: Path = typer.Option(Path("reports/analytics"), "--output-dir", help="Directory to write artifacts."),
) -> None:
    """
    Write snapshot.json and one parquet per table.
    """
    config = _load_config(config_path)
    ref = _reference_date(reference_date, config)
    snap = _compute(events_path, attempts_path, questions_path, quizzes_path, catalog_path, config, period_days, ref)
    written = write_snapshot(snap, output_dir)
    console.print(f"[bold]Wrote {len(written)} artifacts to {output_dir}[/bold]")


@app.command()
def weekly(
    events_path: Path = EVENTS_OPTION,
    attempts_path: Path = ATTEMPTS_OPTION,
    questions_path: Optional[Path] = typer.Option(
        None, "--questions-path", help="Question table; when given, attempts for quizzes it lacks are dropped."
    ),
    quizzes_path: Optional[Path] = QUIZZES_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
    output: Optional[Path] = typer.Option(None, "--output", help="Optional parquet output for the summary."),
) -> None:
    """
    Recompute weekly dashboard counters with the same ratio and day-key rules.
    """
    config = _load_config(config_path)
    events_df = read_table(_require_file(events_path))
    attempts_df = read_table(_require_file(attempts_path))
    known_tables = [read_table(_require_file(p)) for p in (questions_path, quizzes_path) if p]
    quiz_ids = {str(q) for table in known_tables if "quiz_id" in table.columns for q in table["quiz_id"]}
    summary = weekly_summary(
        events_df,
        attempts_df,
        tz=config.timezone,
        fallback_seconds=config.fallback_duration_seconds,
        quiz_ids=quiz_ids if known_tables else None,
    )

    table = Table(show_header=True, header_style="bold magenta")
    for column in summary.columns:
        table.add_column(column)
    for row in summary.itertuples(index=False):
        table.add_row(*[f"{v:.1f}" if isinstance(v, float) else str(v) for v in row])
    console.print(table)

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        summary.to_parquet(output, index=False)
        console.print(f"[bold]Weekly summary saved to {output}[/bold]")


if __name__ == "__main__":
    app()
