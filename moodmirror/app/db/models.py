from __future__ import annotations

import json
from datetime import datetime
from uuid import uuid4

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..schemas.emotion import EmotionAnalysis, EmotionKind, EmotionScore
from ..utils.time import utc_now

_SCORES_ADAPTER = TypeAdapter(list[EmotionScore])


class Base(DeclarativeBase):
    """Base declarative model."""


class CheckInRecord(Base):
    """One persisted check-in: the classifier analysis plus user notes."""

    __tablename__ = "check_ins"
    __table_args__ = (
        Index("ix_check_ins_timestamp", "timestamp"),
        Index("ix_check_ins_primary_emotion", "primary_emotion"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    primary_emotion: Mapped[str] = mapped_column(String(20), nullable=False)
    emotion_scores: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_insight: Mapped[str | None] = mapped_column(Text, nullable=True)
    voice_transcript: Mapped[str | None] = mapped_column(Text, nullable=True)

    @classmethod
    def from_analysis(cls, analysis: EmotionAnalysis, notes: str | None = None) -> CheckInRecord:
        return cls(
            id=str(analysis.id),
            timestamp=analysis.created_at,
            primary_emotion=analysis.primary_emotion.value,
            emotion_scores=_SCORES_ADAPTER.dump_json(analysis.scores).decode("utf-8"),
            notes=notes,
            ai_insight=analysis.narrative,
            voice_transcript=analysis.voice_transcript,
        )

    @property
    def emotion(self) -> EmotionKind | None:
        return EmotionKind.parse(self.primary_emotion)

    def decoded_scores(self) -> list[EmotionScore]:
        """Stored score list; corrupt or missing blobs decode as empty."""

        if not self.emotion_scores:
            return []
        try:
            return _SCORES_ADAPTER.validate_json(self.emotion_scores)
        except (ValidationError, ValueError):
            return []

    def confidence_for(self, emotion: EmotionKind) -> float | None:
        for score in self.decoded_scores():
            if score.emotion == emotion:
                return score.confidence
        return None

    def to_analysis(self) -> EmotionAnalysis | None:
        if not self.emotion_scores or self.emotion is None:
            return None
        try:
            scores = _SCORES_ADAPTER.validate_json(self.emotion_scores)
        except (ValidationError, ValueError):
            return None
        return EmotionAnalysis(
            id=self.id,
            created_at=self.timestamp,
            scores=scores,
            narrative=self.ai_insight,
            voice_transcript=self.voice_transcript,
        )

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"CheckInRecord(id={self.id!r}, timestamp={self.timestamp!r}, emotion={self.primary_emotion!r})"


class SettingEntry(Base):
    """Key-value configuration stored in DB."""

    __tablename__ = "settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
    )


__all__ = [
    "Base",
    "CheckInRecord",
    "SettingEntry",
]
