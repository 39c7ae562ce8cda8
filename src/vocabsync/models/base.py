"""Base model configuration."""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from vocabsync.config import settings

# Create SQLAlchemy engine
engine = create_engine(settings.database.url, echo=settings.database.echo)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create declarative base class
Base = declarative_base()


def init_db() -> None:
    """Initialize database."""
    # Register the mapped tables before creating them
    import vocabsync.models.models  # noqa: F401

    Base.metadata.create_all(bind=engine)  # Create tables if they don't exist
