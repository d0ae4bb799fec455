from __future__ import annotations

import base64
import logging
import time
from collections.abc import Callable, Sequence
from datetime import tzinfo
from typing import Any, TypeVar

import httpx

from ..db.models import CheckInRecord
from ..metrics import CLASSIFIER_LATENCY, CLASSIFIER_REQUESTS
from ..schemas.emotion import EmotionAnalysis
from .errors import (
    ClassifierAPIError,
    ClassifierDecodeError,
    ClassifierError,
    ClassifierNetworkError,
    InvalidAPIKeyError,
    RateLimitExceededError,
)
from .parsing import extract_candidate_text, parse_emotion_response, parse_insights_response
from .prompts import (
    DEFAULT_INSIGHT_ENTRIES,
    build_description_prompt,
    build_image_prompt,
    build_insights_prompt,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-3-flash-preview"


class GeminiClassifier:
    """Emotion classifier backed by the Gemini ``generateContent`` REST endpoint."""

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        temperature: float = 0.7,
        max_output_tokens: int = 1024,
        insight_entries: int = DEFAULT_INSIGHT_ENTRIES,
        tz: tzinfo | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise InvalidAPIKeyError()
        self._api_key = api_key
        self._endpoint = f"{base_url.rstrip('/')}/models/{model}:generateContent"
        self._timeout = timeout
        self._generation_config = {
            "temperature": temperature,
            "topK": 40,
            "topP": 0.95,
            "maxOutputTokens": max_output_tokens,
        }
        self._insight_entries = insight_entries
        self._tz = tz
        self._transport = transport

    async def analyze_image(
        self,
        image: bytes,
        voice_tone: str | None = None,
        transcript: str | None = None,
    ) -> EmotionAnalysis:
        parts: list[dict[str, Any]] = [
            {
                "inline_data": {
                    "mime_type": "image/jpeg",
                    "data": base64.b64encode(image).decode("ascii"),
                }
            },
            {"text": build_image_prompt(voice_tone, transcript)},
        ]
        return await self._generate(
            "analyze_image",
            parts,
            lambda text: parse_emotion_response(text, voice_transcript=transcript),
        )

    async def analyze_description(
        self,
        face_description: str,
        voice_tone: str | None = None,
        transcript: str | None = None,
    ) -> EmotionAnalysis:
        prompt = build_description_prompt(face_description, voice_tone, transcript)
        return await self._generate(
            "analyze_description",
            [{"text": prompt}],
            lambda text: parse_emotion_response(text, voice_transcript=transcript),
        )

    async def generate_insights(self, records: Sequence[CheckInRecord]) -> list[str]:
        prompt = build_insights_prompt(records, self._insight_entries, self._tz)
        return await self._generate("generate_insights", [{"text": prompt}], parse_insights_response)

    # ------------------------------------------------------------------
    async def _generate(
        self,
        operation: str,
        parts: list[dict[str, Any]],
        parse: Callable[[str], T],
    ) -> T:
        body = {
            "contents": [{"parts": parts}],
            "generationConfig": self._generation_config,
        }
        start = time.perf_counter()
        try:
            payload = await self._post(body)
            result = parse(extract_candidate_text(payload))
        except ClassifierError as exc:
            CLASSIFIER_REQUESTS.labels(operation, exc.category).inc()
            logger.warning(
                "gemini request failed",
                extra={
                    "operation": operation,
                    "status": exc.category,
                    "extra_fields": {"error": str(exc)},
                },
            )
            raise
        finally:
            CLASSIFIER_LATENCY.labels(operation).observe(time.perf_counter() - start)

        CLASSIFIER_REQUESTS.labels(operation, "ok").inc()
        logger.info(
            "gemini request complete",
            extra={
                "operation": operation,
                "duration_ms": round((time.perf_counter() - start) * 1000, 3),
            },
        )
        return result

    async def _post(self, body: dict[str, Any]) -> Any:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    self._endpoint,
                    params={"key": self._api_key},
                    json=body,
                )
        except httpx.RequestError as exc:
            raise ClassifierNetworkError(f"Network error: {exc}", cause=exc) from exc

        if response.status_code != 200:
            raise self._error_for_status(response)

        try:
            return response.json()
        except ValueError as exc:
            raise ClassifierDecodeError(f"Failed to decode response: {exc}", cause=exc) from exc

    @staticmethod
    def _error_for_status(response: httpx.Response) -> ClassifierError:
        status = response.status_code
        if status == 429:
            return RateLimitExceededError()

        message: str | None = None
        try:
            error = response.json().get("error")
            if isinstance(error, dict) and isinstance(error.get("message"), str):
                message = error["message"]
        except (ValueError, AttributeError):
            message = None

        if status in {401, 403} or (status == 400 and message and "api key" in message.lower()):
            return InvalidAPIKeyError(message)
        return ClassifierAPIError(message or f"HTTP {status}", status_code=status)


__all__ = ["GeminiClassifier"]
