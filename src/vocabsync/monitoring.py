"""Prometheus metrics for vocabsync."""
from prometheus_client import Counter, Histogram, start_http_server

# Review metrics
reviews_recorded = Counter(
    "vocabsync_reviews_total",
    "Total number of reviews recorded",
    ["outcome"],
)

# Vocabulary management metrics
words_added = Counter(
    "vocabsync_words_added_total",
    "Total number of vocabulary entries created",
)

# Sync metrics
sync_runs = Counter(
    "vocabsync_sync_runs_total",
    "Total number of synchronization attempts",
    ["status"],
)

sync_conflicts = Counter(
    "vocabsync_sync_conflicts_total",
    "Total number of equal-timestamp conflicts resolved during merges",
)

merge_duration = Histogram(
    "vocabsync_merge_duration_seconds",
    "Duration of replica merges in seconds",
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
)

# Database metrics
db_errors = Counter(
    "vocabsync_db_errors_total",
    "Total number of database errors",
    ["error_type"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
