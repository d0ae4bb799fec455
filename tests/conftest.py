from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Sequence
from datetime import datetime
from pathlib import Path
from uuid import uuid4

import pytest

from moodmirror.app.db.models import CheckInRecord
from moodmirror.app.schemas.emotion import EmotionAnalysis, EmotionKind, EmotionScore
from moodmirror.app.services.storage import SaveFailedError
from moodmirror.app.services.voice import VoiceAnalysisResult
from moodmirror.db import create_engine, create_session_factory, init_db


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
async def temp_session_factory(tmp_path: Path) -> AsyncIterator:
    db_path = tmp_path / f"unit_{uuid4().hex}.db"
    engine = create_engine(f"sqlite+aiosqlite:///{db_path}")
    session_factory = create_session_factory(engine)
    await init_db(engine, session_factory, "test")
    try:
        yield session_factory
    finally:
        await engine.dispose()


def make_analysis(
    emotion: EmotionKind,
    confidence: float = 0.8,
    *,
    created_at: datetime | None = None,
    narrative: str | None = "insight",
) -> EmotionAnalysis:
    fields = {
        "scores": [EmotionScore(emotion=emotion, confidence=confidence)],
        "narrative": narrative,
    }
    if created_at is not None:
        fields["created_at"] = created_at
    return EmotionAnalysis(**fields)


def make_record(
    emotion: EmotionKind | str,
    timestamp: datetime,
    confidence: float = 0.8,
    notes: str | None = None,
) -> CheckInRecord:
    if isinstance(emotion, str):
        # unknown names bypass the enum, like a row written by an older build
        record = CheckInRecord.from_analysis(
            make_analysis(EmotionKind.NEUTRAL, confidence, created_at=timestamp), notes
        )
        record.primary_emotion = emotion
        return record
    return CheckInRecord.from_analysis(
        make_analysis(emotion, confidence, created_at=timestamp), notes
    )


@pytest.fixture()
def record_factory() -> Callable[..., CheckInRecord]:
    return make_record


class InMemoryStore:
    """Record store double with switchable failures."""

    def __init__(self, records: Sequence[CheckInRecord] = ()) -> None:
        self.records: list[CheckInRecord] = list(records)
        self.fail_saves = 0
        self.save_calls = 0

    async def save(self, analysis: EmotionAnalysis, notes: str | None = None) -> CheckInRecord:
        self.save_calls += 1
        if self.fail_saves:
            self.fail_saves -= 1
            raise SaveFailedError(RuntimeError("disk full"))
        record = CheckInRecord.from_analysis(analysis, notes)
        self.records.append(record)
        return record

    async def fetch_all(self) -> list[CheckInRecord]:
        return sorted(self.records, key=lambda record: record.timestamp, reverse=True)

    async def fetch(self, start: datetime, end: datetime) -> list[CheckInRecord]:
        return [record for record in await self.fetch_all() if start <= record.timestamp <= end]

    async def delete(self, record: CheckInRecord) -> None:
        self.records = [item for item in self.records if item.id != record.id]

    async def delete_all(self) -> None:
        self.records = []


class ScriptedClassifier:
    """Classifier double returning queued results or raising queued errors."""

    def __init__(
        self,
        analysis: EmotionAnalysis | None = None,
        *,
        error: Exception | None = None,
        insights: Sequence[str] = (),
    ) -> None:
        self.analysis = analysis or make_analysis(EmotionKind.HAPPY, 0.9)
        self.error = error
        self.insights = list(insights)
        self.image_calls: list[dict] = []
        self.insight_calls: list[Sequence[CheckInRecord]] = []

    async def analyze_image(
        self,
        image: bytes,
        voice_tone: str | None = None,
        transcript: str | None = None,
    ) -> EmotionAnalysis:
        self.image_calls.append({"image": image, "voice_tone": voice_tone, "transcript": transcript})
        if self.error is not None:
            raise self.error
        return self.analysis.model_copy(update={"voice_transcript": transcript})

    async def analyze_description(
        self,
        face_description: str,
        voice_tone: str | None = None,
        transcript: str | None = None,
    ) -> EmotionAnalysis:
        if self.error is not None:
            raise self.error
        return self.analysis

    async def generate_insights(self, records: Sequence[CheckInRecord]) -> list[str]:
        self.insight_calls.append(records)
        if self.error is not None:
            raise self.error
        return list(self.insights)


class ScriptedTranscriber:
    def __init__(
        self,
        result: VoiceAnalysisResult | None = None,
        *,
        error: Exception | None = None,
    ) -> None:
        self.result = result or VoiceAnalysisResult(
            transcription="feeling good today",
            confidence=0.9,
            voice_tone="calm, soft tone",
        )
        self.error = error
        self.calls: list[str] = []

    async def transcribe(self, audio_ref: str) -> VoiceAnalysisResult:
        self.calls.append(audio_ref)
        if self.error is not None:
            raise self.error
        return self.result
