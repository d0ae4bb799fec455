"""Analytics over stored check-ins and AI pattern insights."""

from .analytics import (
    StreakMode,
    emotion_frequency,
    emotion_streak,
    emotion_trend,
    filter_by_date_range,
    group_by_day,
    most_common_emotion,
    time_of_day_patterns,
)
from .generator import InsightsGenerator

__all__ = [
    "InsightsGenerator",
    "StreakMode",
    "emotion_frequency",
    "emotion_streak",
    "emotion_trend",
    "filter_by_date_range",
    "group_by_day",
    "most_common_emotion",
    "time_of_day_patterns",
]
