from __future__ import annotations

from prometheus_client import Counter, Histogram

CHECKINS_TOTAL = Counter(
    "moodmirror_checkins_total",
    "Check-in submissions by outcome",
    ("result",),
)

CLASSIFIER_REQUESTS = Counter(
    "moodmirror_classifier_requests_total",
    "Emotion classifier calls by operation and outcome",
    ("operation", "outcome"),
)

CLASSIFIER_LATENCY = Histogram(
    "moodmirror_classifier_latency_seconds",
    "Emotion classifier call latency in seconds",
    ("operation",),
)

STORAGE_OPERATIONS = Counter(
    "moodmirror_storage_operations_total",
    "Record store operations by kind and outcome",
    ("operation", "outcome"),
)

TRANSCRIPTION_FAILURES = Counter(
    "moodmirror_transcription_failures_total",
    "Voice transcriptions that degraded to no voice data",
)

__all__ = [
    "CHECKINS_TOTAL",
    "CLASSIFIER_LATENCY",
    "CLASSIFIER_REQUESTS",
    "STORAGE_OPERATIONS",
    "TRANSCRIPTION_FAILURES",
]
