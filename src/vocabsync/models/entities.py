"""Plain data structures shared by the scheduling and sync services."""
from dataclasses import dataclass, field, asdict
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional

from vocabsync.config import DEFAULT_EASE_FACTOR

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return a timezone-aware UTC datetime (naive values are assumed UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return ensure_utc(datetime.fromisoformat(value))


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return ensure_utc(value).isoformat()


@dataclass
class SchedulingState:
    """SM-2 scheduling metadata embedded in every vocabulary entry."""
    interval_days: int
    repetition_count: int
    ease_factor: float
    next_review_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "interval_days": self.interval_days,
            "repetition_count": self.repetition_count,
            "ease_factor": self.ease_factor,
            "next_review_at": _format_datetime(self.next_review_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SchedulingState":
        return cls(
            interval_days=int(data.get("interval_days", 0)),
            repetition_count=int(data.get("repetition_count", 0)),
            ease_factor=float(data.get("ease_factor", DEFAULT_EASE_FACTOR)),
            next_review_at=_parse_datetime(data["next_review_at"]),
        )


@dataclass
class VocabularyEntry:
    """A single word the learner is studying."""
    id: str
    word: str
    translation: str
    created_at: datetime
    updated_at: datetime
    scheduling: SchedulingState
    pronunciation: Optional[str] = None  # IPA notation
    part_of_speech: Optional[str] = None
    notes: Optional[str] = None
    difficulty: int = 3  # 1-5
    definitions: List[str] = field(default_factory=list)
    example_sentences: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    last_reviewed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return {
            "id": self.id,
            "word": self.word,
            "translation": self.translation,
            "pronunciation": self.pronunciation,
            "part_of_speech": self.part_of_speech,
            "notes": self.notes,
            "difficulty": self.difficulty,
            "definitions": list(self.definitions),
            "example_sentences": list(self.example_sentences),
            "tags": list(self.tags),
            "created_at": _format_datetime(self.created_at),
            "updated_at": _format_datetime(self.updated_at),
            "last_reviewed_at": _format_datetime(self.last_reviewed_at),
            "scheduling": self.scheduling.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VocabularyEntry":
        """Build an entry from the output of :meth:`to_dict`."""
        return cls(
            id=data["id"],
            word=data["word"],
            translation=data["translation"],
            pronunciation=data.get("pronunciation"),
            part_of_speech=data.get("part_of_speech"),
            notes=data.get("notes"),
            difficulty=int(data.get("difficulty", 3)),
            definitions=list(data.get("definitions") or []),
            example_sentences=list(data.get("example_sentences") or []),
            tags=list(data.get("tags") or []),
            created_at=_parse_datetime(data["created_at"]),
            updated_at=_parse_datetime(data["updated_at"]),
            last_reviewed_at=_parse_datetime(data.get("last_reviewed_at")),
            scheduling=SchedulingState.from_dict(data["scheduling"]),
        )


@dataclass
class DailyReviewInfo:
    """Due set and progress for the current day. Never persisted."""
    due_entry_ids: List[str]
    due_count: int
    progress: float  # 0-100
    review_goal: int
    new_words_available: int = 0


@dataclass
class ReconciliationStats:
    """Counters produced by a single merge."""
    remote_added: int = 0
    local_added: int = 0
    local_overwritten: int = 0
    remote_overwritten: int = 0
    conflicts: int = 0
    total_merged: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class MergeResult:
    """Merged collection and the statistics of the merge that produced it."""
    merged: List[VocabularyEntry]
    stats: ReconciliationStats


@dataclass
class SyncProfile:
    """Identifies whose vocabulary a payload carries."""
    profile_id: str
    profile_name: str
    source_language: str
    target_language: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SyncProfile":
        return cls(
            profile_id=data["profile_id"],
            profile_name=data.get("profile_name", ""),
            source_language=data["source_language"],
            target_language=data["target_language"],
        )


@dataclass
class RemoteSnapshot:
    """Entries received from a peer replica."""
    entries: List[VocabularyEntry]
    produced_at: datetime
    profile: Optional[SyncProfile] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RemoteSnapshot":
        profile = data.get("profile")
        return cls(
            entries=[VocabularyEntry.from_dict(item) for item in data.get("entries", [])],
            produced_at=_parse_datetime(data["produced_at"]),
            profile=SyncProfile.from_dict(profile) if profile else None,
        )


@dataclass
class SyncPayload:
    """Entries this replica sends to a peer."""
    entries: List[VocabularyEntry]
    last_sync: datetime
    produced_at: datetime
    profile: SyncProfile

    def to_dict(self) -> Dict[str, Any]:
        return {
            "profile": self.profile.to_dict(),
            "last_sync": _format_datetime(self.last_sync),
            "produced_at": _format_datetime(self.produced_at),
            "entries": [entry.to_dict() for entry in self.entries],
        }
