from __future__ import annotations

import pytest

from moodmirror.app.ai.errors import ClassifierDecodeError, InvalidResponseError
from moodmirror.app.ai.parsing import (
    extract_candidate_text,
    parse_emotion_response,
    parse_insights_response,
    strip_code_fences,
)
from moodmirror.app.schemas.emotion import EmotionKind


def test_strip_code_fences_handles_json_and_plain_fences() -> None:
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


def test_parse_emotion_response_drops_unknown_names() -> None:
    text = """```json
    {
      "emotions": [
        {"name": "Happy", "confidence": 0.7},
        {"name": "nostalgic", "confidence": 0.9},
        {"name": "calm", "confidence": 1.4}
      ],
      "primaryEmotion": "nostalgic",
      "insight": "You look relaxed."
    }
    ```"""

    analysis = parse_emotion_response(text, voice_transcript="hello")

    assert [score.emotion for score in analysis.scores] == [EmotionKind.HAPPY, EmotionKind.CALM]
    assert analysis.confidence_for(EmotionKind.CALM) == 1.0
    assert analysis.primary_emotion is EmotionKind.CALM
    assert analysis.narrative == "You look relaxed."
    assert analysis.voice_transcript == "hello"


def test_parse_emotion_response_rejects_malformed_json() -> None:
    with pytest.raises(ClassifierDecodeError):
        parse_emotion_response("I think they look happy")
    with pytest.raises(ClassifierDecodeError):
        parse_emotion_response('{"primaryEmotion": "happy"}')


def test_parse_insights_response_filters_blank_entries() -> None:
    insights = parse_insights_response('{"insights": ["  Mornings are bright ", "", "Rest more"]}')
    assert insights == ["Mornings are bright", "Rest more"]


def test_extract_candidate_text() -> None:
    body = {"candidates": [{"content": {"parts": [{"text": "{}"}]}}]}
    assert extract_candidate_text(body) == "{}"

    with pytest.raises(InvalidResponseError):
        extract_candidate_text({"candidates": []})
    with pytest.raises(InvalidResponseError):
        extract_candidate_text({"candidates": [{"content": {"parts": [{"text": 3}]}}]})
