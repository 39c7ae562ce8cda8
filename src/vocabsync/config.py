"""Configuration settings for vocabsync."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))
EXPORTS_DIR = DATA_DIR / "exports"

# SM-2 defaults
DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
DEFAULT_EASY_BONUS = 1.3
DEFAULT_INTERVAL_MODIFIER = 1.0
DEFAULT_DAILY_REVIEW_GOAL = 20


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    directories = [
        DATA_DIR,
        EXPORTS_DIR,
    ]

    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///vocabsync.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class SchedulingSettings:
    """Spaced repetition tuning knobs."""
    easy_bonus: float = float(os.getenv("SRS_EASY_BONUS", str(DEFAULT_EASY_BONUS)))
    interval_modifier: float = float(
        os.getenv("SRS_INTERVAL_MODIFIER", str(DEFAULT_INTERVAL_MODIFIER))
    )


@dataclass
class ReviewSettings:
    """Daily review settings."""
    daily_goal: int = int(os.getenv("DAILY_REVIEW_GOAL", str(DEFAULT_DAILY_REVIEW_GOAL)))


@dataclass
class SyncSettings:
    """Profile settings attached to sync payloads."""
    profile_id: str = os.getenv("SYNC_PROFILE_ID", "default")
    profile_name: str = os.getenv("SYNC_PROFILE_NAME", "Default")
    source_language: str = os.getenv("SYNC_SOURCE_LANGUAGE", "en")
    target_language: str = os.getenv("SYNC_TARGET_LANGUAGE", "uk")


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_scheduling_settings() -> SchedulingSettings:
    """Get scheduling settings."""
    return SchedulingSettings()


def get_review_settings() -> ReviewSettings:
    """Get review settings."""
    return ReviewSettings()


def get_sync_settings() -> SyncSettings:
    """Get sync settings."""
    return SyncSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    scheduling: SchedulingSettings = field(default_factory=get_scheduling_settings)
    review: ReviewSettings = field(default_factory=get_review_settings)
    sync: SyncSettings = field(default_factory=get_sync_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if self.review.daily_goal < 1:
            raise ValueError("DAILY_REVIEW_GOAL must be positive")

        if not self.sync.profile_id:
            raise ValueError("SYNC_PROFILE_ID is required")

        if not self.sync.source_language or not self.sync.target_language:
            raise ValueError("SYNC_SOURCE_LANGUAGE and SYNC_TARGET_LANGUAGE are required")


# Create global settings instance
settings = Settings()
settings.validate()
