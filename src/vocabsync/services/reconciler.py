"""Merge two independently modified replicas of a vocabulary collection.

Entries are matched by identifier and resolved entry-by-entry with
last-writer-wins on ``updated_at``. The result depends only on entry content
and the checkpoint, never on which side is labelled local, on input order, or
on the wall clock.
"""
import json
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Sequence

from vocabsync.models.entities import (
    MergeResult,
    ReconciliationStats,
    RemoteSnapshot,
    VocabularyEntry,
)

logger = logging.getLogger(__name__)


def _canonical(entry: VocabularyEntry) -> str:
    return json.dumps(entry.to_dict(), sort_keys=True, ensure_ascii=False)


def resolve_tie(first: VocabularyEntry, second: VocabularyEntry) -> VocabularyEntry:
    """Pick one of two divergent versions written at the same instant.

    The version with the lexicographically lower canonical serialization wins,
    so both replicas settle on the same winner.
    """
    return first if _canonical(first) <= _canonical(second) else second


def _newest(first: VocabularyEntry, second: VocabularyEntry) -> VocabularyEntry:
    if first.updated_at > second.updated_at:
        return first
    if second.updated_at > first.updated_at:
        return second
    if first == second:
        return first
    return resolve_tie(first, second)


def _index(entries: Iterable[VocabularyEntry], side: str) -> Dict[str, VocabularyEntry]:
    """Map entries by identifier, dropping entries without one."""
    indexed: Dict[str, VocabularyEntry] = {}
    for entry in entries or []:
        if entry is None or not entry.id:
            logger.warning("Skipping %s entry without an identifier", side)
            continue
        existing = indexed.get(entry.id)
        if existing is not None:
            logger.warning("Duplicate %s entry %s, keeping the newest version", side, entry.id)
            entry = _newest(existing, entry)
        indexed[entry.id] = entry
    return indexed


def merge(
    local: Sequence[VocabularyEntry],
    remote: RemoteSnapshot,
    checkpoint: datetime,
) -> MergeResult:
    """Merge the local collection with a remote snapshot.

    Args:
        local: every entry currently held by this replica.
        remote: entries received from the peer.
        checkpoint: instant of the last successful sync on this replica.

    Entries present on only one side are kept. Deletions are not propagated:
    an entry missing from the remote side is never removed locally.
    """
    local_by_id = _index(local, "local")
    remote_by_id = _index(remote.entries, "remote")
    stats = ReconciliationStats()
    merged: List[VocabularyEntry] = []

    for entry_id in sorted(local_by_id.keys() | remote_by_id.keys()):
        local_entry = local_by_id.get(entry_id)
        remote_entry = remote_by_id.get(entry_id)

        if remote_entry is None:
            if local_entry.created_at > checkpoint:
                stats.local_added += 1
            merged.append(local_entry)
            continue

        if local_entry is None:
            stats.remote_added += 1
            merged.append(remote_entry)
            continue

        if remote_entry.updated_at > local_entry.updated_at:
            stats.local_overwritten += 1
            merged.append(remote_entry)
        elif local_entry.updated_at > remote_entry.updated_at:
            stats.remote_overwritten += 1
            merged.append(local_entry)
        elif local_entry == remote_entry:
            merged.append(local_entry)
        else:
            stats.conflicts += 1
            logger.info("Conflicting edits of %s at %s", entry_id, local_entry.updated_at)
            merged.append(resolve_tie(local_entry, remote_entry))

    stats.total_merged = len(merged)
    logger.debug("Merge finished: %s", stats)
    return MergeResult(merged=merged, stats=stats)
