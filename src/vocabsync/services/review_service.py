"""Review service: due-set computation and recording review outcomes."""
import logging
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from vocabsync.config import SchedulingSettings, settings
from vocabsync.exceptions import ValidationError
from vocabsync.models.entities import DailyReviewInfo, VocabularyEntry, ensure_utc
from vocabsync.monitoring import reviews_recorded
from vocabsync.services.scheduling import is_due, next_state, validate_rating
from vocabsync.services.vocabulary_service import VocabularyService

logger = logging.getLogger(__name__)

SORT_FIELDS = ("word", "created_at", "updated_at", "next_review")


def compute_daily_review(
    entries: Sequence[VocabularyEntry],
    now: datetime,
    goal: int,
    reviewed_today_count: int,
) -> DailyReviewInfo:
    """Compute the entries due at ``now`` and today's progress towards ``goal``.

    Due entries are ordered most overdue first, ties broken by identifier.
    """
    if isinstance(goal, bool) or not isinstance(goal, int) or goal <= 0:
        raise ValidationError(f"Daily review goal must be a positive integer, got {goal!r}")
    if reviewed_today_count < 0:
        raise ValidationError(
            f"Reviewed count cannot be negative, got {reviewed_today_count}"
        )

    due = sorted(
        (entry for entry in entries if is_due(entry.scheduling, now)),
        key=lambda entry: (entry.scheduling.next_review_at, entry.id),
    )
    progress = min(100.0, 100.0 * reviewed_today_count / goal)

    return DailyReviewInfo(
        due_entry_ids=[entry.id for entry in due],
        due_count=len(due),
        progress=progress,
        review_goal=goal,
        new_words_available=sum(
            1 for entry in entries if entry.scheduling.repetition_count == 0
        ),
    )


def count_reviewed_today(entries: Sequence[VocabularyEntry], now: datetime) -> int:
    """Count entries last reviewed since the start of ``now``'s UTC day."""
    day_start = ensure_utc(now).replace(hour=0, minute=0, second=0, microsecond=0)
    return sum(
        1
        for entry in entries
        if entry.last_reviewed_at is not None and entry.last_reviewed_at >= day_start
    )


@dataclass
class VocabularyFilters:
    """Criteria for listing vocabulary."""
    search: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    difficulty: List[int] = field(default_factory=list)
    part_of_speech: List[str] = field(default_factory=list)
    only_due: bool = False
    sort_by: str = "updated_at"
    descending: bool = True


def _sort_key(sort_by: str):
    if sort_by == "word":
        return lambda entry: (entry.word.lower(), entry.id)
    if sort_by == "created_at":
        return lambda entry: (entry.created_at, entry.id)
    if sort_by == "next_review":
        return lambda entry: (entry.scheduling.next_review_at, entry.id)
    return lambda entry: (entry.updated_at, entry.id)


def filter_entries(
    entries: Sequence[VocabularyEntry],
    filters: VocabularyFilters,
    now: datetime,
) -> List[VocabularyEntry]:
    """Apply search, membership and due filters, then sort."""
    if filters.sort_by not in SORT_FIELDS:
        raise ValidationError(
            f"Unknown sort field {filters.sort_by!r}, expected one of {', '.join(SORT_FIELDS)}"
        )

    result = list(entries)

    if filters.search:
        needle = filters.search.lower()
        result = [
            entry for entry in result
            if needle in entry.word.lower()
            or needle in entry.translation.lower()
            or any(needle in sentence.lower() for sentence in entry.example_sentences)
        ]

    if filters.tags:
        result = [entry for entry in result if any(tag in entry.tags for tag in filters.tags)]

    if filters.difficulty:
        result = [entry for entry in result if entry.difficulty in filters.difficulty]

    if filters.part_of_speech:
        result = [
            entry for entry in result
            if entry.part_of_speech and entry.part_of_speech in filters.part_of_speech
        ]

    if filters.only_due:
        result = [entry for entry in result if is_due(entry.scheduling, now)]

    result.sort(key=_sort_key(filters.sort_by), reverse=filters.descending)
    return result


class ReviewService:
    """Service that applies review outcomes to stored entries."""

    def __init__(
        self,
        db: Session,
        config: Optional[SchedulingSettings] = None,
        profile_id: Optional[str] = None,
    ):
        """Initialize the service with a database session."""
        self.db = db
        self.config = config or settings.scheduling
        self.vocabulary = VocabularyService(db, profile_id)

    def record_review(
        self, entry_id: str, rating: int, now: Optional[datetime] = None
    ) -> VocabularyEntry:
        """Grade a review of ``entry_id`` and persist the new scheduling state."""
        rating = validate_rating(rating)
        now = ensure_utc(now) if now is not None else datetime.now(UTC)

        entry = self.vocabulary.get_entry(entry_id)
        entry.scheduling = next_state(entry.scheduling, rating, now, self.config)
        entry.last_reviewed_at = now
        entry.updated_at = max(now, entry.updated_at)
        self.vocabulary.save_entry(entry)

        reviews_recorded.labels(outcome="pass" if rating >= 3 else "fail").inc()
        logger.info(
            "Reviewed %s with rating %d, next review in %d days",
            entry_id,
            rating,
            entry.scheduling.interval_days,
        )
        return entry

    def daily_review(
        self, now: Optional[datetime] = None, goal: Optional[int] = None
    ) -> DailyReviewInfo:
        """Due set and progress for today, derived from the stored collection."""
        now = ensure_utc(now) if now is not None else datetime.now(UTC)
        goal = goal if goal is not None else settings.review.daily_goal
        entries = self.vocabulary.list_entries()
        return compute_daily_review(entries, now, goal, count_reviewed_today(entries, now))
