"""Tests for configuration settings."""
import pytest

from vocabsync.config import (
    EXPORTS_DIR,
    ReviewSettings,
    SchedulingSettings,
    Settings,
    SyncSettings,
    ensure_directories,
    settings,
)


def test_settings_defaults():
    """Test default settings values."""
    assert SchedulingSettings().easy_bonus == 1.3
    assert SchedulingSettings().interval_modifier == 1.0
    assert ReviewSettings().daily_goal == 20
    assert settings.sync.profile_id


def test_settings_validate_daily_goal():
    """A daily goal below one is rejected."""
    with pytest.raises(ValueError, match="DAILY_REVIEW_GOAL"):
        Settings(review=ReviewSettings(daily_goal=0)).validate()


def test_settings_validate_languages():
    """Profiles must name both languages."""
    broken = Settings(sync=SyncSettings(source_language=""))

    with pytest.raises(ValueError, match="SYNC_SOURCE_LANGUAGE"):
        broken.validate()


def test_ensure_directories():
    """Test that all required directories exist."""
    ensure_directories()

    assert EXPORTS_DIR.exists()


if __name__ == "__main__":
    pytest.main([__file__])
