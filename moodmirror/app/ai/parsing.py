from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..schemas.emotion import EmotionAnalysis, EmotionKind, EmotionScore
from .errors import ClassifierDecodeError, InvalidResponseError

logger = logging.getLogger(__name__)


class EmotionData(BaseModel):
    name: str
    confidence: float


class EmotionResponsePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    emotions: list[EmotionData]
    primary_emotion: str | None = Field(default=None, alias="primaryEmotion")
    insight: str | None = None


class InsightsResponsePayload(BaseModel):
    insights: list[str]


def strip_code_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[len("```json"):]
    elif cleaned.startswith("```"):
        cleaned = cleaned[len("```"):]
    cleaned = cleaned.strip()
    if cleaned.endswith("```"):
        cleaned = cleaned[: -len("```")]
    return cleaned.strip()


def extract_candidate_text(body: object) -> str:
    """Pull ``candidates[0].content.parts[0].text`` out of a Gemini response body."""

    try:
        text = body["candidates"][0]["content"]["parts"][0]["text"]  # type: ignore[index]
    except (KeyError, IndexError, TypeError) as exc:
        raise InvalidResponseError(cause=exc) from exc
    if not isinstance(text, str):
        raise InvalidResponseError()
    return text


def parse_emotion_response(
    text: str,
    *,
    voice_transcript: str | None = None,
) -> EmotionAnalysis:
    try:
        payload = EmotionResponsePayload.model_validate_json(strip_code_fences(text))
    except ValidationError as exc:
        raise ClassifierDecodeError(f"Failed to decode response: {exc}", cause=exc) from exc

    scores: list[EmotionScore] = []
    for item in payload.emotions:
        kind = EmotionKind.parse(item.name)
        if kind is None:
            logger.info("dropping unknown emotion name", extra={"emotion": item.name})
            continue
        scores.append(EmotionScore(emotion=kind, confidence=item.confidence))

    analysis = EmotionAnalysis(
        scores=scores,
        narrative=payload.insight or None,
        voice_transcript=voice_transcript,
    )
    reported = EmotionKind.parse(payload.primary_emotion)
    if reported is not None and reported != analysis.primary_emotion:
        logger.info(
            "model primaryEmotion disagrees with scores",
            extra={
                "emotion": analysis.primary_emotion.value,
                "extra_fields": {"reported": reported.value},
            },
        )
    return analysis


def parse_insights_response(text: str) -> list[str]:
    try:
        payload = InsightsResponsePayload.model_validate_json(strip_code_fences(text))
    except ValidationError as exc:
        raise ClassifierDecodeError(f"Failed to decode response: {exc}", cause=exc) from exc
    return [insight.strip() for insight in payload.insights if insight.strip()]


__all__ = [
    "EmotionResponsePayload",
    "InsightsResponsePayload",
    "extract_candidate_text",
    "parse_emotion_response",
    "parse_insights_response",
    "strip_code_fences",
]
