from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from .emotion import EmotionKind


class EmotionFrequency(BaseModel):
    model_config = ConfigDict(frozen=True)

    emotion: EmotionKind
    count: int = Field(..., ge=0)
    percentage: float = Field(..., ge=0.0, le=100.0)


class TrendPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: date
    emotion: EmotionKind
    average_confidence: float


class TimeOfDayBucket(BaseModel):
    model_config = ConfigDict(frozen=True)

    hour: int = Field(..., ge=0, le=23)
    emotion: EmotionKind
    count: int = Field(..., ge=0)


class StreakResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    emotion: EmotionKind
    days: int = Field(..., ge=1)


class InsightsReport(BaseModel):
    insights: list[str] = Field(default_factory=list)
    most_common_emotion: EmotionKind | None = None
    streak: StreakResult | None = None
    records_analyzed: int = 0
    window_start: datetime
    window_end: datetime
    generated_at: datetime

    @property
    def empty(self) -> bool:
        return self.records_analyzed == 0


__all__ = [
    "EmotionFrequency",
    "InsightsReport",
    "StreakResult",
    "TimeOfDayBucket",
    "TrendPoint",
]
