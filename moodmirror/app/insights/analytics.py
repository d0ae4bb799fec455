"""Derived statistics over stored check-ins.

Every function here is pure: it reads a sequence of ``CheckInRecord`` and
returns fresh values, never touching storage. Empty input yields an empty
list or ``None``. Records whose ``primary_emotion`` is not a known
``EmotionKind`` are skipped when grouping.

Stored timestamps are naive UTC. Day and hour buckets convert them to
``tz``, or to the system local zone when ``tz`` is omitted.
Ties between emotions are always broken by ``EmotionKind`` declaration
order so results are reproducible.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta, tzinfo
from enum import Enum
from itertools import pairwise

from ..db.models import CheckInRecord
from ..schemas.analytics import EmotionFrequency, StreakResult, TimeOfDayBucket, TrendPoint
from ..schemas.emotion import EmotionKind
from ..utils.time import local_day, to_local


class StreakMode(str, Enum):
    CALENDAR = "calendar"
    DATA_DAYS = "data_days"


def _known(records: Iterable[CheckInRecord]) -> list[tuple[CheckInRecord, EmotionKind]]:
    pairs = []
    for record in records:
        kind = record.emotion
        if kind is not None:
            pairs.append((record, kind))
    return pairs


def _ranked(counter: Counter[EmotionKind]) -> list[tuple[EmotionKind, int]]:
    return sorted(counter.items(), key=lambda item: (-item[1], item[0].rank))


def emotion_frequency(records: Sequence[CheckInRecord]) -> list[EmotionFrequency]:
    if not records:
        return []
    total = len(records)
    counter = Counter(kind for _, kind in _known(records))
    return [
        EmotionFrequency(emotion=kind, count=count, percentage=count / total * 100)
        for kind, count in _ranked(counter)
    ]


def most_common_emotion(records: Sequence[CheckInRecord]) -> EmotionKind | None:
    counter = Counter(kind for _, kind in _known(records))
    if not counter:
        return None
    return _ranked(counter)[0][0]


def daily_majority(
    records: Sequence[CheckInRecord],
    tz: tzinfo | None = None,
) -> dict[date, EmotionKind]:
    """Majority primary emotion for each day that has data."""

    by_day: dict[date, Counter[EmotionKind]] = defaultdict(Counter)
    for record, kind in _known(records):
        by_day[local_day(record.timestamp, tz)][kind] += 1
    return {day: _ranked(counter)[0][0] for day, counter in by_day.items()}


def emotion_streak(
    records: Sequence[CheckInRecord],
    *,
    mode: StreakMode = StreakMode.CALENDAR,
    tz: tzinfo | None = None,
) -> StreakResult | None:
    """Longest run of days sharing the same majority emotion.

    ``CALENDAR`` only extends a run across adjacent calendar days; a day
    without check-ins breaks it. ``DATA_DAYS`` compares neighbouring days
    that have data and ignores the gaps between them. The earliest run wins
    when two runs have equal length.
    """

    majorities = daily_majority(records, tz)
    if not majorities:
        return None

    days = sorted(majorities)
    best_kind = majorities[days[0]]
    best_length = 1
    current_length = 1
    for previous, current in pairwise(days):
        same_emotion = majorities[current] == majorities[previous]
        adjacent = mode is StreakMode.DATA_DAYS or current - previous == timedelta(days=1)
        if same_emotion and adjacent:
            current_length += 1
        else:
            current_length = 1
        if current_length > best_length:
            best_length = current_length
            best_kind = majorities[current]
    return StreakResult(emotion=best_kind, days=best_length)


def emotion_trend(
    records: Sequence[CheckInRecord],
    tz: tzinfo | None = None,
) -> list[TrendPoint]:
    """Mean confidence per (day, primary emotion); sparse, no interpolation."""

    groups: dict[tuple[date, EmotionKind], list[CheckInRecord]] = defaultdict(list)
    for record, kind in _known(records):
        groups[(local_day(record.timestamp, tz), kind)].append(record)

    points = []
    for (day, kind), members in groups.items():
        total = sum(record.confidence_for(kind) or 0.0 for record in members)
        points.append(
            TrendPoint(day=day, emotion=kind, average_confidence=total / len(members))
        )
    return sorted(points, key=lambda point: (point.day, point.emotion.rank))


def time_of_day_patterns(
    records: Sequence[CheckInRecord],
    tz: tzinfo | None = None,
) -> list[TimeOfDayBucket]:
    counter: Counter[tuple[int, EmotionKind]] = Counter(
        (to_local(record.timestamp, tz).hour, kind) for record, kind in _known(records)
    )
    buckets = [
        TimeOfDayBucket(hour=hour, emotion=kind, count=count)
        for (hour, kind), count in counter.items()
    ]
    return sorted(buckets, key=lambda bucket: (bucket.hour, bucket.emotion.rank))


def filter_by_date_range(
    records: Iterable[CheckInRecord],
    start: datetime,
    end: datetime,
) -> list[CheckInRecord]:
    return [record for record in records if start <= record.timestamp <= end]


def group_by_day(
    records: Iterable[CheckInRecord],
    tz: tzinfo | None = None,
) -> dict[date, list[CheckInRecord]]:
    grouped: dict[date, list[CheckInRecord]] = defaultdict(list)
    for record in records:
        grouped[local_day(record.timestamp, tz)].append(record)
    return {
        day: sorted(members, key=lambda record: record.timestamp, reverse=True)
        for day, members in grouped.items()
    }


__all__ = [
    "StreakMode",
    "daily_majority",
    "emotion_frequency",
    "emotion_streak",
    "emotion_trend",
    "filter_by_date_range",
    "group_by_day",
    "most_common_emotion",
    "time_of_day_patterns",
]
