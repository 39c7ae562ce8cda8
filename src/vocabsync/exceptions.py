"""Exceptions raised by vocabsync services."""
from typing import Optional


class VocabSyncError(Exception):
    """Base class for all vocabsync errors."""


class ValidationError(VocabSyncError, ValueError):
    """An input value is outside its allowed range."""


class NotFoundError(VocabSyncError, LookupError):
    """A vocabulary entry with the given identifier does not exist."""

    def __init__(self, entry_id: str) -> None:
        self.entry_id = entry_id
        super().__init__(f"Vocabulary entry {entry_id} not found")


class PersistenceError(VocabSyncError):
    """The vocabulary store failed to read or write."""


class ProfileMismatchError(VocabSyncError):
    """A remote snapshot belongs to an incompatible profile."""

    def __init__(self, reason: str, remote_profile_id: Optional[str] = None) -> None:
        self.reason = reason
        self.remote_profile_id = remote_profile_id
        super().__init__(reason)


class SyncInProgressError(VocabSyncError):
    """Another synchronization is already running on this device."""

    def __init__(self) -> None:
        super().__init__("Sync already in progress")
