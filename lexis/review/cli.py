"""
Lexis: terminal vocabulary review.

A Rich terminal interface for spaced repetition review of vocabulary.

Commands:
- lexis review   - Review due vocabulary
- lexis due      - List items due now
- lexis stats    - Show review statistics
- lexis import   - Import vocabulary from JSON decks
- lexis add      - Add a single vocabulary item
"""
from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from lexis.config import Settings, get_settings

from .deck import VocabularyDeck
from .exceptions import PersistenceError, ValidationError
from .grades import ReviewGrade, parse_grade
from .persistence import PersistenceWorker
from .scheduler import SRSScheduler
from .selector import select_due_entries
from .session import QueueEntry, RequeuePolicy, ReviewSessionController
from .state import VocabularyItem, utc_now
from .store import SqlScheduleStore
from .summary import SessionSummary, interval_label

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="lexis",
    help="Lexis: spaced repetition vocabulary review",
    no_args_is_help=True,
)
console = Console()


# =============================================================================
# Styling
# =============================================================================

STYLES = {
    "info": "bold cyan",
    "warning": "bold yellow",
    "dim": "dim",
    "grade": {
        ReviewGrade.AGAIN: "red",
        ReviewGrade.HARD: "yellow",
        ReviewGrade.GOOD: "green",
        ReviewGrade.EASY: "bright_blue",
    },
    "difficulty": {
        "Beginner": "green",
        "Intermediate": "yellow",
        "Advanced": "red",
    },
}

QUIT_KEYS = {"q", "quit", "exit"}


def style_grade(grade: ReviewGrade) -> str:
    color = STYLES["grade"][grade]
    return f"[{color}]{grade.label}[/{color}]"


def style_difficulty(difficulty: str) -> str:
    color = STYLES["difficulty"].get(difficulty, "white")
    return f"[{color}]{difficulty}[/{color}]"


def _open_store(database: Optional[str]) -> SqlScheduleStore:
    try:
        return SqlScheduleStore(url=database)
    except PersistenceError as e:
        console.print(f"[red]Cannot open database: {e}[/red]")
        raise typer.Exit(1)


def _record_session_start(
    store: SqlScheduleStore, session_id: str, user_id: str, started_at: datetime
) -> bool:
    """Write the session-history row. Grading goes on without it."""
    try:
        store.start_session(session_id, user_id, started_at)
    except PersistenceError as e:
        logger.warning("Session {} not recorded: {}", session_id, e)
        console.print("[yellow]Session history unavailable; reviews are still saved.[/yellow]")
        return False
    return True


# =============================================================================
# Display Helpers
# =============================================================================


def display_item_front(entry: QueueEntry, index: int, total: int) -> None:
    """Display the headword side of a card."""
    item = entry.item
    status = "new" if entry.state.is_new else f"interval {interval_label(entry.state.interval_days)}"
    header = (
        f"Word {index}/{total}  |  {item.category}  |  "
        f"{style_difficulty(item.difficulty)}  |  {status}"
    )

    content = f"[bold]{item.headword}[/bold]"
    if item.pronunciation:
        content += f"\n[dim]{item.pronunciation}[/dim]"

    console.print(
        Panel(content, title=header, title_align="left", border_style="cyan", padding=(1, 2))
    )


def display_item_back(entry: QueueEntry, previews: dict[ReviewGrade, int]) -> None:
    """Display the meaning and the interval each grade would give."""
    item = entry.item
    content = item.meaning
    if item.example:
        content += f"\n\n[italic]{item.example}[/italic]"

    console.print(Panel(content, border_style="green", padding=(1, 2)))

    options = "   ".join(
        f"[{grade.code}/{grade.value[0]}] {style_grade(grade)} ({interval_label(days)})"
        for grade, days in previews.items()
    )
    console.print(options)


def display_session_summary(summary: SessionSummary) -> None:
    """Display end-of-session summary."""
    distribution = "  ".join(
        f"{style_grade(grade)}: {count}" for grade, count in summary.grade_distribution.items()
    )
    console.print("\n")
    console.print(
        Panel(
            f"[bold]Session Complete![/bold]\n\n"
            f"Words reviewed: {summary.count}\n"
            f"Average grade: {summary.average_grade_weight:.2f} / 3\n"
            f"Perfect recalls: {summary.perfect_count}\n"
            f"Accuracy: {summary.accuracy:.1f}%\n\n"
            f"{distribution}",
            title="Summary",
            border_style="green",
        )
    )


def _ask_grade() -> ReviewGrade | None:
    """Prompt until a valid grade is given. None means quit."""
    while True:
        raw = Prompt.ask("Grade")
        if raw.strip().lower() in QUIT_KEYS:
            return None
        try:
            return parse_grade(raw)
        except ValidationError as e:
            console.print(f"[yellow]{e}. Use a/h/g/e or 1-4.[/yellow]")


# =============================================================================
# Commands
# =============================================================================


@app.command()
def review(
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Reviewer id"),
    limit: Optional[int] = typer.Option(
        None,
        "--limit", "-l",
        min=0,
        help="Maximum words in this session",
    ),
    requeue: Optional[RequeuePolicy] = typer.Option(
        None,
        "--requeue",
        help="Re-present Again-graded words later in the session",
    ),
    database: Optional[str] = typer.Option(None, "--db", help="SQLAlchemy database URL"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """
    Start an interactive review session.

    Presents due words one at a time. Press Enter to reveal the meaning,
    then grade your recall: a/1 Again, h/2 Hard, g/3 Good, e/4 Easy.
    Enter q at any prompt to stop; grades already given are kept.
    """
    settings = get_settings()
    user_id = user or settings.default_user_id
    store = _open_store(database)

    now = utc_now()
    entries = list(
        select_due_entries(
            store.fetch_due_items(user_id, now),
            now,
            limit if limit is not None else settings.session_limit,
        )
    )

    if not entries:
        console.print("\n[green]Nothing due for review![/green]")
        console.print("All caught up. Check back tomorrow.")
        raise typer.Exit(0)

    new_count = sum(1 for _, state in entries if state.is_new)
    console.print(f"\n[bold]Session: {len(entries)} words[/bold]")
    console.print(f"  Due reviews: {len(entries) - new_count}")
    console.print(f"  New words: {new_count}")
    console.print()

    if not yes and not Confirm.ask("Start session?", default=True):
        raise typer.Exit(0)

    scheduler = SRSScheduler()
    worker = PersistenceWorker(store)
    controller = ReviewSessionController(
        scheduler=scheduler,
        dispatcher=worker,
        requeue_policy=requeue or RequeuePolicy(settings.requeue_policy),
        max_requeues_per_item=settings.max_requeues_per_item,
    )

    worker.start()
    session = controller.start(user_id, entries, now)
    session_recorded = _record_session_start(store, session.session_id, user_id, session.started_at)

    try:
        while not session.is_complete:
            entry = controller.current
            display_item_front(entry, session.cursor + 1, len(session.queue))

            answer = Prompt.ask("[dim]Press Enter to reveal (q to quit)[/dim]", default="")
            if answer.strip().lower() in QUIT_KEYS:
                break

            controller.reveal()
            display_item_back(entry, scheduler.preview(entry.state, utc_now()))

            grade = _ask_grade()
            if grade is None:
                break

            outcome = controller.submit_grade(grade, item_id=entry.item_id)
            console.print(
                f"{style_grade(grade)}: next review in "
                f"{interval_label(outcome.state.interval_days)}\n"
            )

    except (KeyboardInterrupt, EOFError):
        console.print("\n\n[yellow]Session interrupted.[/yellow]")

    summary = controller.exit()

    if not worker.flush(timeout=settings.persistence_flush_timeout):
        console.print("[yellow]Some reviews are still being saved.[/yellow]")
    worker.stop()
    if worker.status.failed:
        console.print(
            f"[yellow]{worker.status.failed} review(s) could not be saved "
            f"and will be due again next time.[/yellow]"
        )
    if worker.status.log_failed:
        console.print(
            f"[yellow]{worker.status.log_failed} review(s) were scheduled "
            f"but are missing from the review history.[/yellow]"
        )

    if session_recorded:
        try:
            store.end_session(session.session_id, summary, session.ended_at)
        except PersistenceError as e:
            logger.warning("Session {} not closed: {}", session.session_id, e)
            console.print("[yellow]Session history could not be updated.[/yellow]")
    display_session_summary(summary)


@app.command()
def due(
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Reviewer id"),
    limit: int = typer.Option(20, "--limit", "-l", min=0, help="Number of words to list"),
    database: Optional[str] = typer.Option(None, "--db", help="SQLAlchemy database URL"),
) -> None:
    """List words due for review, in review order."""
    settings = get_settings()
    user_id = user or settings.default_user_id
    store = _open_store(database)

    now = utc_now()
    entries = list(select_due_entries(store.fetch_due_items(user_id, now), now, limit))

    if not entries:
        console.print("[green]Nothing due for review.[/green]")
        return

    console.print(f"\n[bold]Due Words ({len(entries)})[/bold]\n")

    table = Table()
    table.add_column("ID")
    table.add_column("Word")
    table.add_column("Category")
    table.add_column("Status")
    table.add_column("Ease")

    for item, state in entries:
        if state.is_new:
            status = "[green]new[/green]"
        else:
            overdue = state.days_overdue(now)
            status = f"[yellow]due[/yellow] (+{overdue}d)" if overdue else "[yellow]due[/yellow]"
        table.add_row(item.id, item.headword, item.category, status, f"{state.ease:.2f}")

    console.print(table)


@app.command()
def stats(
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Reviewer id"),
    database: Optional[str] = typer.Option(None, "--db", help="SQLAlchemy database URL"),
) -> None:
    """Show review statistics and recent sessions."""
    settings = get_settings()
    user_id = user or settings.default_user_id
    store = _open_store(database)
    db_stats = store.get_stats(user_id)

    console.print("\n[bold cyan]Review Statistics[/bold cyan]")
    console.print("=" * 40)

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")

    table.add_row("Total words", str(db_stats["total"]))
    table.add_row("Due today", str(db_stats["due_today"]))
    table.add_row("Due in next 3 days", str(db_stats["due_soon"]))
    table.add_row("Mastered (30+ days)", str(db_stats["mastered"]))
    table.add_row("Total reviews", str(db_stats["total_reviews"]))
    table.add_row("Sessions", str(db_stats["total_sessions"]))

    console.print(table)

    sessions = store.get_session_history(user_id, limit=5)
    if sessions:
        console.print("\n[bold]Recent Sessions[/bold]")
        session_table = Table()
        session_table.add_column("Date")
        session_table.add_column("Words")
        session_table.add_column("Avg grade")
        session_table.add_column("Accuracy")

        for s in sessions:
            session_table.add_row(
                s.started_at.strftime("%Y-%m-%d %H:%M"),
                str(s.items_reviewed),
                f"{s.average_grade_weight:.2f}",
                f"{s.accuracy:.0f}%",
            )

        console.print(session_table)


@app.command("import")
def import_deck(
    source: Optional[Path] = typer.Argument(
        None,
        help="JSON file or directory (defaults to the configured vocabulary dir)",
    ),
    database: Optional[str] = typer.Option(None, "--db", help="SQLAlchemy database URL"),
) -> None:
    """Import vocabulary from JSON decks."""
    settings = get_settings()
    deck = VocabularyDeck(source or settings.vocabulary_dir)
    loaded = deck.load()

    if loaded == 0:
        console.print("\n[red]No vocabulary found![/red]")
        console.print(f"Looking in: {Path(deck.source).absolute()}")
        raise typer.Exit(1)

    store = _open_store(database)
    count = store.add_items(deck)

    console.print(
        f"[green]Imported {count} words from {len(deck.files_loaded)} file(s)[/green]"
    )
    if deck.records_skipped:
        console.print(f"[yellow]Skipped {deck.records_skipped} invalid record(s)[/yellow]")
    console.print(f"Categories: {', '.join(deck.categories)}")


@app.command()
def add(
    headword: str = typer.Argument(..., help="Word or phrase"),
    meaning: str = typer.Argument(..., help="Meaning or translation"),
    example: Optional[str] = typer.Option(None, "--example", "-e", help="Example sentence"),
    category: str = typer.Option("general", "--category", "-c", help="Category"),
    pronunciation: Optional[str] = typer.Option(None, "--pronunciation", "-p"),
    difficulty: str = typer.Option("Beginner", "--difficulty", "-d"),
    database: Optional[str] = typer.Option(None, "--db", help="SQLAlchemy database URL"),
) -> None:
    """Add a single vocabulary item."""
    try:
        item = VocabularyItem.from_dict(
            {
                "headword": headword,
                "meaning": meaning,
                "example": example,
                "category": category,
                "pronunciation": pronunciation,
                "difficulty": difficulty,
            }
        )
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    store = _open_store(database)
    store.add_items([item])
    console.print(f"[green]Added '{item.headword}' ({item.id})[/green]")


# =============================================================================
# Entry Point
# =============================================================================


def configure_logging(settings: Settings) -> None:
    """Replace loguru's default sink with the configured ones."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<level>{message}</level>",
    )
    if settings.log_file:
        logger.add(
            settings.log_file,
            level="DEBUG",
            rotation="10 MB",
            retention="7 days",
        )


def main() -> None:
    """CLI entry point."""
    configure_logging(get_settings())
    app()


if __name__ == "__main__":
    main()
