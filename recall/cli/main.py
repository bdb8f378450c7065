"""
Recall CLI - spaced-repetition scheduling from the terminal.

Usage:
    recall init                         # Create the card/session tables
    recall add-card c1 --tag spanish    # Seed a card
    recall review c1 4                  # Record a review (quality 0-5)
    recall log-session --cards 20       # Store a finished study session
    recall insights                     # Show study insights
    recall heatmap --days 14            # Cards studied per day
    recall recommend -a 92 -r 55 -s 6   # Ranked recommendations for a profile
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime
from typing import Annotated

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from recall.analytics import (
    InsightEngine,
    InsightThresholds,
    LearningProfile,
    RecommendationEngine,
)
from recall.config import get_settings
from recall.core.errors import AppError
from recall.core.models import Card, InsightSeverity, StudySession, utc_now
from recall.db import SqlCardRepository, SqlSessionRepository, dispose_engine, init_db
from recall.logging_setup import configure_logging
from recall.study import HeatmapAggregator, HeatmapWorker, ReviewRequest, SM2Scheduler, record_review

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="recall",
    help="Recall - SM-2 spaced-repetition scheduler",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()

SEVERITY_STYLE = {
    InsightSeverity.INFO: "cyan",
    InsightSeverity.WARN: "yellow",
    InsightSeverity.CRITICAL: "bold red",
}


async def _with_engine(coro):
    try:
        return await coro
    finally:
        # Pooled connections belong to this event loop
        await dispose_engine()


def _run(coro):
    """Run a coroutine, turning AppError into a message and exit code 1."""
    try:
        return asyncio.run(_with_engine(coro))
    except AppError as e:
        logger.debug(f"Command failed: {e.to_dict()}")
        console.print(f"[red]{type(e).__name__}:[/] {e.message}")
        raise typer.Exit(code=1) from e


def _fmt(ts: datetime | None) -> str:
    return ts.astimezone().strftime("%Y-%m-%d %H:%M") if ts else "-"


# =============================================================================
# Store Commands
# =============================================================================


@app.command()
def init() -> None:
    """Create the database tables."""
    _run(init_db())
    console.print(f"[green]Database ready:[/] {get_settings().database_url}")


@app.command("add-card")
def add_card(
    card_id: Annotated[str, typer.Argument(help="Card identifier")],
    tag: Annotated[list[str] | None, typer.Option("--tag", "-t", help="Tag (repeatable)")] = None,
    deck: Annotated[str | None, typer.Option("--deck", "-d", help="Deck identifier")] = None,
) -> None:
    """Add a new card to the store."""
    card = Card(id=card_id, tags=list(tag or []), deck_id=deck)
    _run(SqlCardRepository().add_card(card))
    console.print(f"[green]Card added:[/] {card_id}")


@app.command("log-session")
def log_session(
    cards: Annotated[int, typer.Option("--cards", "-n", min=0, help="Cards studied")],
    correct: Annotated[int, typer.Option("--correct", "-c", min=0, help="Correct answers")] = 0,
    response_ms: Annotated[
        float | None, typer.Option("--response-ms", help="Average response time (ms)")
    ] = None,
) -> None:
    """Store a finished study session."""
    session = StudySession(
        id=uuid.uuid4().hex,
        start_time=utc_now(),
        cards_studied=cards,
        correct_answers=correct,
        average_response_time_ms=response_ms,
    )
    _run(SqlSessionRepository().add_session(session))
    console.print(f"[green]Session logged:[/] {cards} cards")


# =============================================================================
# Review Commands
# =============================================================================


@app.command()
def review(
    card_id: Annotated[str, typer.Argument(help="Card identifier")],
    quality: Annotated[int, typer.Argument(help="Recall quality 0-5 (3+ is a pass)")],
) -> None:
    """Record a review and show what changed."""
    scheduler = SM2Scheduler.from_settings()
    outcome = _run(
        record_review(SqlCardRepository(), ReviewRequest(card_id, quality), scheduler=scheduler)
    )

    table = Table(title=f"Review of {card_id} (q={quality})")
    table.add_column("Field", style="cyan")
    table.add_column("Before", justify="right")
    table.add_column("After", justify="right", style="green")
    for name, (old, new) in outcome.changed_fields.items():
        if isinstance(old, datetime) or isinstance(new, datetime):
            old, new = _fmt(old), _fmt(new)
        elif isinstance(new, float):
            old, new = f"{old:.2f}", f"{new:.2f}"
        table.add_row(name, str(old), str(new))
    console.print(table)
    console.print(f"Next review: [bold]{_fmt(outcome.after.next_review)}[/]")


# =============================================================================
# Analytics Commands
# =============================================================================


@app.command()
def insights() -> None:
    """Scan cards and sessions for study insights."""
    engine = InsightEngine(
        SqlCardRepository(),
        SqlSessionRepository(),
        thresholds=InsightThresholds.from_settings(),
    )
    snapshot = _run(engine.generate())

    if not snapshot.insights:
        console.print(Panel("[green]No issues detected[/]", title="Insights"))
        return

    table = Table(title=f"Insights ({_fmt(snapshot.generated_at)})")
    table.add_column("Severity")
    table.add_column("Type", style="cyan")
    table.add_column("Title")
    table.add_column("Detail", style="dim")
    for insight in snapshot.insights:
        style = SEVERITY_STYLE[insight.severity]
        table.add_row(
            f"[{style}]{insight.severity.value}[/]",
            insight.type.value,
            insight.title,
            insight.detail,
        )
    console.print(table)


@app.command()
def heatmap(
    days: Annotated[int | None, typer.Option("--days", "-d", min=1, help="Trailing days")] = None,
    worker: Annotated[bool, typer.Option("--worker/--inline", help="Bucket on a worker thread")] = False,
) -> None:
    """Cards studied per calendar day."""
    settings = get_settings()
    days = days or settings.heatmap_default_days

    async def _collect():
        if worker:
            async with HeatmapWorker() as w:
                aggregator = HeatmapAggregator(SqlSessionRepository(), worker=w)
                return await aggregator.get_last_n_days(days)
        aggregator = HeatmapAggregator(SqlSessionRepository())
        return await aggregator.get_last_n_days(days)

    heat = _run(_collect())
    peak = max((h.reviews for h in heat), default=0) or 1

    table = Table(title=f"Activity - last {days} days")
    table.add_column("Day", style="cyan")
    table.add_column("Reviews", justify="right")
    table.add_column("")
    for bucket in heat:
        bar = "#" * round(bucket.reviews / peak * 30)
        table.add_row(bucket.day.isoformat(), str(bucket.reviews), f"[green]{bar}[/]")
    console.print(table)


@app.command()
def recommend(
    accuracy: Annotated[float, typer.Option("--accuracy", "-a", help="Overall accuracy 0-100")],
    retention: Annotated[float, typer.Option("--retention", "-r", help="Retention rate 0-100")],
    streak: Annotated[int, typer.Option("--streak", "-s", help="Current day streak")] = 0,
) -> None:
    """Ranked recommendations for a learning profile."""
    profile = LearningProfile()
    profile.performance.overall_accuracy = accuracy
    profile.performance.retention_rate = retention
    profile.streaks.current_streak = streak

    engine = RecommendationEngine.from_settings()
    try:
        recs = engine.generate_recommendations(profile)
    except AppError as e:
        console.print(f"[red]{type(e).__name__}:[/] {e.message}")
        raise typer.Exit(code=1) from e

    if not recs:
        console.print("[green]No changes recommended[/]")
        return

    table = Table(title="Recommendations")
    table.add_column("#", justify="right")
    table.add_column("Action", style="cyan")
    table.add_column("Priority")
    table.add_column("Why", style="dim")
    for i, rec in enumerate(recs, 1):
        table.add_row(str(i), rec.action, rec.priority.value, rec.rationale)
    console.print(table)


# =============================================================================
# Entry Point
# =============================================================================


@app.callback()
def _configure(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    configure_logging(level="DEBUG" if verbose else None)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
