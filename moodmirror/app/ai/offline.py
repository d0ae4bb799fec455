from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import tzinfo

from ..db.models import CheckInRecord
from ..insights.analytics import emotion_streak, most_common_emotion
from ..schemas.emotion import EmotionAnalysis, EmotionKind, EmotionScore

OFFLINE_NARRATIVE = (
    "MoodMirror is offline right now, so this check-in was saved with a neutral "
    "reading. Take a slow breath and try again when you're connected."
)


class OfflineClassifier:
    """Deterministic classifier used when Gemini is not configured.

    Returns the same neutral reading for every check-in and derives
    insights from local statistics only, so the whole pipeline keeps
    working without network access.
    """

    def __init__(self, narrative: str = OFFLINE_NARRATIVE, *, tz: tzinfo | None = None) -> None:
        self._narrative = narrative
        self._tz = tz

    def _reading(self, transcript: str | None) -> EmotionAnalysis:
        return EmotionAnalysis(
            scores=[
                EmotionScore(emotion=EmotionKind.NEUTRAL, confidence=0.6),
                EmotionScore(emotion=EmotionKind.CALM, confidence=0.4),
            ],
            narrative=self._narrative,
            voice_transcript=transcript,
        )

    async def analyze_image(
        self,
        image: bytes,
        voice_tone: str | None = None,
        transcript: str | None = None,
    ) -> EmotionAnalysis:
        await asyncio.sleep(0)  # yield control
        return self._reading(transcript)

    async def analyze_description(
        self,
        face_description: str,
        voice_tone: str | None = None,
        transcript: str | None = None,
    ) -> EmotionAnalysis:
        await asyncio.sleep(0)
        return self._reading(transcript)

    async def generate_insights(self, records: Sequence[CheckInRecord]) -> list[str]:
        await asyncio.sleep(0)
        if not records:
            return []
        insights = [f"You checked in {len(records)} times in this period."]
        common = most_common_emotion(records)
        if common is not None:
            insights.append(f"Your most frequent mood was {common.value}.")
        streak = emotion_streak(records, tz=self._tz)
        if streak is not None and streak.days > 1:
            insights.append(
                f"You felt {streak.emotion.value} for {streak.days} days in a row."
            )
        return insights


__all__ = ["OFFLINE_NARRATIVE", "OfflineClassifier"]
