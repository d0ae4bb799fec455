from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


class VoiceAnalysisError(Exception):
    """Transcription could not produce usable voice data."""

    message = "Voice analysis failed"

    def __init__(self, message: str | None = None, *, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message or self.message)


class SpeechNotAuthorizedError(VoiceAnalysisError):
    message = "Speech recognition access is required. Please enable it in Settings."


class RecognitionFailedError(VoiceAnalysisError):
    message = "Recognition failed"


class NoAudioFileError(VoiceAnalysisError):
    message = "No audio file provided."


class TranscriptionFailedError(VoiceAnalysisError):
    message = "Failed to transcribe audio."


@dataclass(frozen=True)
class VoiceAnalysisResult:
    transcription: str
    confidence: float
    voice_tone: str


@runtime_checkable
class VoiceTranscriber(Protocol):  # pragma: no cover - structural typing helper
    async def transcribe(self, audio_ref: str) -> VoiceAnalysisResult: ...


NEUTRAL_TONE = "neutral tone"

# RMS thresholds over samples normalised to [-1, 1], loudest first
_TONE_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (0.3, "energetic, loud tone"),
    (0.15, "confident, clear tone"),
    (0.05, "calm, soft tone"),
)


def rms_amplitude(samples: Iterable[float]) -> float | None:
    total = 0.0
    count = 0
    for sample in samples:
        total += sample * sample
        count += 1
    if count == 0:
        return None
    return math.sqrt(total / count)


def describe_voice_tone(samples: Iterable[float]) -> str:
    """Map the loudness of a clip to a short tone descriptor for the classifier."""

    rms = rms_amplitude(samples)
    if rms is None:
        return NEUTRAL_TONE
    for threshold, label in _TONE_THRESHOLDS:
        if rms > threshold:
            return label
    return "quiet, subdued tone"


__all__ = [
    "NEUTRAL_TONE",
    "NoAudioFileError",
    "RecognitionFailedError",
    "SpeechNotAuthorizedError",
    "TranscriptionFailedError",
    "VoiceAnalysisError",
    "VoiceAnalysisResult",
    "VoiceTranscriber",
    "describe_voice_tone",
    "rms_amplitude",
]
