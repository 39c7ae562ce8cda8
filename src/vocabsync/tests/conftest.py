"""Test configuration."""
import os
from datetime import datetime, timedelta, UTC
from typing import Callable, Generator, Optional

import pytest
from faker import Faker
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite://")

# Import after environment setup
from vocabsync.models.base import Base
from vocabsync.models import models  # noqa: F401
from vocabsync.models.entities import SchedulingState, VocabularyEntry

fake = Faker()

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    """A fixed instant used as the current time."""
    return NOW


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create a fresh in-memory database session for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def make_entry() -> Callable[..., VocabularyEntry]:
    """Factory for vocabulary entries with sensible defaults."""

    def _make(
        entry_id: Optional[str] = None,
        created_at: datetime = NOW - timedelta(days=10),
        updated_at: Optional[datetime] = None,
        next_review_at: Optional[datetime] = None,
        interval_days: int = 0,
        repetition_count: int = 0,
        ease_factor: float = 2.5,
        **fields,
    ) -> VocabularyEntry:
        fields.setdefault("word", fake.word())
        fields.setdefault("translation", fake.word())
        return VocabularyEntry(
            id=entry_id or fake.uuid4(),
            created_at=created_at,
            updated_at=updated_at or created_at,
            scheduling=SchedulingState(
                interval_days=interval_days,
                repetition_count=repetition_count,
                ease_factor=ease_factor,
                next_review_at=next_review_at or created_at,
            ),
            **fields,
        )

    return _make
