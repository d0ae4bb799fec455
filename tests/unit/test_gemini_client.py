from __future__ import annotations

import base64
import json
from datetime import UTC, datetime, timedelta

import httpx
import pytest

from moodmirror.app.ai.errors import (
    ClassifierAPIError,
    ClassifierDecodeError,
    ClassifierNetworkError,
    InvalidAPIKeyError,
    InvalidResponseError,
    RateLimitExceededError,
)
from moodmirror.app.ai.gemini_client import GeminiClassifier
from moodmirror.app.schemas.emotion import EmotionKind
from tests.conftest import make_record

EMOTION_TEXT = json.dumps(
    {
        "emotions": [{"name": "sad", "confidence": 0.6}, {"name": "calm", "confidence": 0.3}],
        "primaryEmotion": "sad",
        "insight": "It's okay to feel low.",
    }
)


def _candidate(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def _classifier(handler, **kwargs) -> GeminiClassifier:
    return GeminiClassifier(
        "test-key",
        base_url="https://gemini.test/v1beta/",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_missing_api_key_is_rejected() -> None:
    with pytest.raises(InvalidAPIKeyError) as excinfo:
        GeminiClassifier(None)
    assert excinfo.value.category == "auth"


@pytest.mark.anyio
async def test_analyze_image_request_shape() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json=_candidate(EMOTION_TEXT))

    classifier = _classifier(handler, model="gemini-test")
    analysis = await classifier.analyze_image(
        b"jpeg-bytes", voice_tone="calm, soft tone", transcript="long week"
    )

    assert analysis.primary_emotion is EmotionKind.SAD
    assert analysis.narrative == "It's okay to feel low."
    assert analysis.voice_transcript == "long week"

    request = captured[0]
    assert request.method == "POST"
    assert request.url.path == "/v1beta/models/gemini-test:generateContent"
    assert request.url.params["key"] == "test-key"
    body = json.loads(request.content)
    parts = body["contents"][0]["parts"]
    assert parts[0]["inline_data"]["mime_type"] == "image/jpeg"
    assert base64.b64decode(parts[0]["inline_data"]["data"]) == b"jpeg-bytes"
    assert "Voice tone: calm, soft tone" in parts[1]["text"]
    assert 'They said: "long week"' in parts[1]["text"]
    assert body["generationConfig"] == {
        "temperature": 0.7,
        "topK": 40,
        "topP": 0.95,
        "maxOutputTokens": 1024,
    }


@pytest.mark.anyio
async def test_analyze_description_sends_text_only() -> None:
    captured: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(json.loads(request.content))
        return httpx.Response(200, json=_candidate(EMOTION_TEXT))

    analysis = await _classifier(handler).analyze_description("slight frown")

    assert analysis.primary_emotion is EmotionKind.SAD
    parts = captured[0]["contents"][0]["parts"]
    assert len(parts) == 1
    assert "Facial expression: slight frown" in parts[0]["text"]


@pytest.mark.anyio
async def test_generate_insights_limits_summary() -> None:
    captured: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(json.loads(request.content)["contents"][0]["parts"][0]["text"])
        return httpx.Response(200, json=_candidate('{"insights": ["Mornings look brighter"]}'))

    base = datetime(2024, 7, 1, 9, 0)
    records = [make_record(EmotionKind.HAPPY, base + timedelta(days=day)) for day in range(5)]

    insights = await _classifier(handler, insight_entries=2, tz=UTC).generate_insights(records)

    assert insights == ["Mornings look brighter"]
    data_lines = [line for line in captured[0].splitlines() if line.startswith("- ")]
    assert data_lines == ["- Jul 05, 2024 09:00: happy", "- Jul 04, 2024 09:00: happy"]


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("status", "payload", "error_type", "category"),
    [
        (429, {}, RateLimitExceededError, "rate_limit"),
        (401, {}, InvalidAPIKeyError, "auth"),
        (403, {}, InvalidAPIKeyError, "auth"),
        (400, {"error": {"message": "API key not valid."}}, InvalidAPIKeyError, "auth"),
        (400, {"error": {"message": "Bad request body"}}, ClassifierAPIError, "api"),
        (500, {}, ClassifierAPIError, "api"),
    ],
)
async def test_status_codes_map_to_errors(status, payload, error_type, category) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=payload)

    with pytest.raises(error_type) as excinfo:
        await _classifier(handler).analyze_image(b"x")
    assert excinfo.value.category == category


@pytest.mark.anyio
async def test_api_error_message_uses_body_or_status() -> None:
    def with_message(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": {"message": "Bad request body"}})

    def without_message(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="unavailable")

    with pytest.raises(ClassifierAPIError) as first:
        await _classifier(with_message).analyze_image(b"x")
    with pytest.raises(ClassifierAPIError) as second:
        await _classifier(without_message).analyze_image(b"x")

    assert str(first.value) == "Gemini API error: Bad request body"
    assert str(second.value) == "Gemini API error: HTTP 503"
    assert second.value.status_code == 503


@pytest.mark.anyio
async def test_network_failure_maps_to_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ClassifierNetworkError) as excinfo:
        await _classifier(handler).analyze_image(b"x")
    assert isinstance(excinfo.value.cause, httpx.ConnectError)


@pytest.mark.anyio
async def test_bad_bodies_map_to_decode_and_invalid_errors() -> None:
    def not_json(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>")

    def no_candidates(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"candidates": []})

    def prose(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_candidate("They look happy to me"))

    with pytest.raises(ClassifierDecodeError):
        await _classifier(not_json).analyze_image(b"x")
    with pytest.raises(InvalidResponseError):
        await _classifier(no_candidates).analyze_image(b"x")
    with pytest.raises(ClassifierDecodeError):
        await _classifier(prose).analyze_image(b"x")
