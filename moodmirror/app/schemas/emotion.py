from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from ..utils.time import utc_now


class EmotionKind(str, Enum):
    HAPPY = "happy"
    SAD = "sad"
    ANGRY = "angry"
    ANXIOUS = "anxious"
    NEUTRAL = "neutral"
    EXCITED = "excited"
    FEARFUL = "fearful"
    DISGUSTED = "disgusted"
    SURPRISED = "surprised"
    CALM = "calm"

    @classmethod
    def parse(cls, name: object) -> EmotionKind | None:
        """Case-insensitive lookup; unknown names map to ``None``."""

        if isinstance(name, cls):
            return name
        if not isinstance(name, str):
            return None
        try:
            return cls(name.strip().lower())
        except ValueError:
            return None

    @property
    def rank(self) -> int:
        """Position in declaration order, used to break ties."""

        return _RANK[self]

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def emoji(self) -> str:
        return _EMOJI[self]


_RANK: dict[EmotionKind, int] = {kind: index for index, kind in enumerate(EmotionKind)}

_EMOJI: dict[EmotionKind, str] = {
    EmotionKind.HAPPY: "😊",
    EmotionKind.SAD: "😢",
    EmotionKind.ANGRY: "😠",
    EmotionKind.ANXIOUS: "😰",
    EmotionKind.NEUTRAL: "😐",
    EmotionKind.EXCITED: "🤩",
    EmotionKind.FEARFUL: "😨",
    EmotionKind.DISGUSTED: "🤢",
    EmotionKind.SURPRISED: "😲",
    EmotionKind.CALM: "😌",
}


class EmotionScore(BaseModel):
    """A single emotion with a confidence in ``[0, 1]``."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    emotion: EmotionKind
    confidence: float

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: float | int | str) -> float:
        # NaN compares false both ways and would slip through min/max
        confidence = float(value)
        if confidence != confidence:
            return 0.0
        return min(max(confidence, 0.0), 1.0)


class EmotionAnalysis(BaseModel):
    """Classifier output for one check-in."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=utc_now)
    scores: list[EmotionScore] = Field(default_factory=list)
    narrative: str | None = None
    voice_transcript: str | None = None

    @field_validator("scores")
    @classmethod
    def _one_score_per_kind(cls, value: list[EmotionScore]) -> list[EmotionScore]:
        seen: set[EmotionKind] = set()
        unique: list[EmotionScore] = []
        for score in value:
            if score.emotion in seen:
                continue
            seen.add(score.emotion)
            unique.append(score)
        return unique

    @computed_field  # type: ignore[prop-decorator]
    @property
    def primary_emotion(self) -> EmotionKind:
        best: EmotionScore | None = None
        for score in self.scores:
            if best is None or score.confidence > best.confidence:
                best = score
        return best.emotion if best else EmotionKind.NEUTRAL

    def confidence_for(self, emotion: EmotionKind) -> float:
        for score in self.scores:
            if score.emotion == emotion:
                return score.confidence
        return 0.0


__all__ = [
    "EmotionAnalysis",
    "EmotionKind",
    "EmotionScore",
]
