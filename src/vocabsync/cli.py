"""Command line interface for vocabsync."""
import json
import logging
from contextlib import contextmanager
from datetime import datetime, UTC
from pathlib import Path
from typing import Iterator, Optional

import typer
from sqlalchemy.orm import Session
from typing_extensions import Annotated

from vocabsync.config import ensure_directories, settings
from vocabsync.exceptions import VocabSyncError
from vocabsync.logging_config import setup_logging
from vocabsync.models.base import SessionLocal, init_db
from vocabsync.models.entities import RemoteSnapshot, VocabularyEntry
from vocabsync.monitoring import start_monitoring
from vocabsync.services.review_service import (
    ReviewService,
    VocabularyFilters,
    filter_entries,
)
from vocabsync.services.scheduling import days_until_due
from vocabsync.services.sync_service import SyncService
from vocabsync.services.vocabulary_service import VocabularyService
from vocabsync.services.vocabulary_store import SqlVocabularyStore

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="vocabsync",
    help="Spaced repetition vocabulary with offline replica sync.",
    no_args_is_help=True,
)


@contextmanager
def _session() -> Iterator[Session]:
    """Open a session and turn service errors into a clean exit."""
    db = SessionLocal()
    try:
        yield db
    except VocabSyncError as e:
        logger.debug("Command failed", exc_info=True)
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    finally:
        db.close()


def _sync_service(db: Session) -> SyncService:
    return SyncService(SqlVocabularyStore(db, settings.sync.profile_id))


def _format_entry(entry: VocabularyEntry) -> str:
    due_in = days_until_due(entry.scheduling, datetime.now(UTC))
    due = "due now" if due_in == 0 else f"due in {due_in}d"
    return f"{entry.id}  {entry.word} - {entry.translation}  ({due})"


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v", help="Enable debug logging"
    )] = False,
    metrics_port: Annotated[Optional[int], typer.Option(
        "--metrics-port", help="Expose Prometheus metrics on this port"
    )] = None,
) -> None:
    """Set up logging, storage and metrics before running a command."""
    setup_logging(level="DEBUG" if verbose else None)
    ensure_directories()
    init_db()
    if metrics_port is not None:
        start_monitoring(metrics_port)


@app.command()
def add(
    word: Annotated[str, typer.Argument(help="Word to learn")],
    translation: Annotated[str, typer.Argument(help="Translation of the word")],
    tag: Annotated[Optional[list[str]], typer.Option("--tag", "-t", help="Tag (repeatable)")] = None,
    part_of_speech: Annotated[Optional[str], typer.Option("--pos", help="Part of speech")] = None,
    example: Annotated[Optional[list[str]], typer.Option("--example", "-e", help="Example sentence")] = None,
) -> None:
    """Add a word to the vocabulary."""
    with _session() as db:
        entry = VocabularyService(db).create_entry(
            word,
            translation,
            tags=tag or [],
            part_of_speech=part_of_speech,
            example_sentences=example or [],
        )
        typer.echo(entry.id)


@app.command("list")
def list_entries(
    search: Annotated[Optional[str], typer.Option("--search", "-s", help="Search text")] = None,
    tag: Annotated[Optional[list[str]], typer.Option("--tag", "-t", help="Only entries with this tag")] = None,
    due: Annotated[bool, typer.Option("--due", help="Only entries due for review")] = False,
    sort_by: Annotated[str, typer.Option("--sort", help="word, created_at, updated_at or next_review")] = "updated_at",
    ascending: Annotated[bool, typer.Option("--asc", help="Sort ascending")] = False,
) -> None:
    """List vocabulary entries."""
    with _session() as db:
        filters = VocabularyFilters(
            search=search,
            tags=tag or [],
            only_due=due,
            sort_by=sort_by,
            descending=not ascending,
        )
        entries = filter_entries(VocabularyService(db).list_entries(), filters, datetime.now(UTC))
        for entry in entries:
            typer.echo(_format_entry(entry))


@app.command("due")
def show_due(
    goal: Annotated[Optional[int], typer.Option("--goal", help="Daily review goal")] = None,
) -> None:
    """Show today's due words and progress."""
    with _session() as db:
        info = ReviewService(db).daily_review(goal=goal)
        typer.echo(
            f"{info.due_count} due, {info.new_words_available} new, "
            f"{info.progress:.0f}% of {info.review_goal}"
        )
        for entry_id in info.due_entry_ids:
            typer.echo(entry_id)


@app.command()
def review(
    entry_id: Annotated[str, typer.Argument(help="Entry identifier")],
    rating: Annotated[int, typer.Argument(help="Recall quality from 0 (forgot) to 5 (perfect)")],
) -> None:
    """Record the outcome of reviewing a word."""
    with _session() as db:
        entry = ReviewService(db).record_review(entry_id, rating)
        typer.echo(_format_entry(entry))


@app.command("export")
def export_payload(
    path: Annotated[Path, typer.Argument(help="File to write the sync payload to")],
) -> None:
    """Write entries changed since the last sync to a JSON file."""
    with _session() as db:
        payload = _sync_service(db).prepare_payload()
        path.write_text(json.dumps(payload.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
        typer.echo(f"Exported {len(payload.entries)} entries to {path}")


@app.command("import")
def import_snapshot(
    path: Annotated[Path, typer.Argument(help="Sync payload written by a peer")],
) -> None:
    """Merge a peer's JSON sync payload into the local vocabulary."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        snapshot = RemoteSnapshot.from_dict(data)
    except (OSError, ValueError, KeyError, TypeError) as e:
        typer.echo(f"Error: cannot read sync payload {path}: {e}", err=True)
        raise typer.Exit(1)

    with _session() as db:
        stats = _sync_service(db).process_snapshot(snapshot)
        typer.echo(json.dumps(stats.to_dict(), indent=2))


@app.command("reset-sync")
def reset_sync() -> None:
    """Forget the last sync checkpoint."""
    with _session() as db:
        _sync_service(db).reset()
        typer.echo("Sync state reset")
