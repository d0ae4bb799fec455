from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from ..db.models import CheckInRecord
from ..schemas.emotion import EmotionAnalysis


@runtime_checkable
class EmotionClassifier(Protocol):  # pragma: no cover - structural typing helper
    async def analyze_image(
        self,
        image: bytes,
        voice_tone: str | None = None,
        transcript: str | None = None,
    ) -> EmotionAnalysis: ...

    async def analyze_description(
        self,
        face_description: str,
        voice_tone: str | None = None,
        transcript: str | None = None,
    ) -> EmotionAnalysis: ...

    async def generate_insights(self, records: Sequence[CheckInRecord]) -> list[str]: ...


__all__ = ["EmotionClassifier"]
