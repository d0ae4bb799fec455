"""Pydantic value types shared across the core."""

from .analytics import (
    EmotionFrequency,
    InsightsReport,
    StreakResult,
    TimeOfDayBucket,
    TrendPoint,
)
from .emotion import EmotionAnalysis, EmotionKind, EmotionScore

__all__ = [
    "EmotionAnalysis",
    "EmotionFrequency",
    "EmotionKind",
    "EmotionScore",
    "InsightsReport",
    "StreakResult",
    "TimeOfDayBucket",
    "TrendPoint",
]
