from __future__ import annotations

from collections.abc import Sequence
from datetime import tzinfo

from ..db.models import CheckInRecord
from ..schemas.emotion import EmotionKind
from ..utils.time import to_local

EMOTION_NAMES = ", ".join(kind.value for kind in EmotionKind)

_EMOTION_JSON_EXAMPLE = """{
  "emotions": [
    {"name": "happy", "confidence": 0.8},
    {"name": "calm", "confidence": 0.5}
  ],
  "primaryEmotion": "happy",
  "insight": "A brief empathetic insight about their emotional state (2-3 sentences)"
}"""

_INSIGHTS_JSON_EXAMPLE = """{
  "insights": [
    "Your mood is most positive in the mornings",
    "You've shown improvement in managing anxiety this week",
    "Consider mindfulness exercises during stressful periods"
  ]
}"""

DEFAULT_INSIGHT_ENTRIES = 30


def build_image_prompt(voice_tone: str | None = None, transcript: str | None = None) -> str:
    """Prompt sent next to the inline JPEG."""

    prompt = (
        "Analyze the person's facial expression in this image to determine their "
        "emotional state.\n\n"
    )
    if voice_tone:
        prompt += f"Additional context - Voice tone: {voice_tone}\n"
    if transcript:
        prompt += f'Additional context - They said: "{transcript}"\n'
    prompt += (
        "\nBased on the facial expression (and any additional context), "
        "return ONLY valid JSON:\n"
    )
    prompt += _EMOTION_JSON_EXAMPLE
    prompt += f"\n\nUse only these emotion names: {EMOTION_NAMES}\n"
    prompt += "\nBe empathetic and supportive in the insight."
    return prompt


def build_description_prompt(
    face_description: str,
    voice_tone: str | None = None,
    transcript: str | None = None,
) -> str:
    """Text-only variant used when no image can be sent."""

    prompt = "Analyze the emotional state based on:\n"
    prompt += f"- Facial expression: {face_description}"
    if voice_tone:
        prompt += f"\n- Voice tone: {voice_tone}"
    if transcript:
        prompt += f'\n- Spoken words: "{transcript}"'
    prompt += "\n\nReturn ONLY valid JSON with emotions and confidence scores (0-1):\n"
    prompt += _EMOTION_JSON_EXAMPLE
    prompt += f"\n\nUse only these emotion names: {EMOTION_NAMES}\n"
    prompt += "\nBe empathetic and supportive in the insight. Make it personal and helpful."
    return prompt


def summarize_records(
    records: Sequence[CheckInRecord],
    limit: int = DEFAULT_INSIGHT_ENTRIES,
    tz: tzinfo | None = None,
) -> str:
    """One ``- <local time>: <emotion>`` line per record, most recent first."""

    recent = sorted(records, key=lambda record: record.timestamp, reverse=True)[:limit]
    return "\n".join(
        f"- {to_local(record.timestamp, tz).strftime('%b %d, %Y %H:%M')}: {record.primary_emotion}"
        for record in recent
    )


def build_insights_prompt(
    records: Sequence[CheckInRecord],
    limit: int = DEFAULT_INSIGHT_ENTRIES,
    tz: tzinfo | None = None,
) -> str:
    prompt = "Analyze emotional patterns from recent check-ins:\n\n"
    prompt += f"Data:\n{summarize_records(records, limit, tz)}\n\n"
    prompt += (
        "Identify:\n"
        "1. Most common emotions\n"
        "2. Time-of-day patterns\n"
        "3. Potential triggers or trends\n"
        "4. Positive improvements\n\n"
    )
    prompt += "Return ONLY valid JSON with 3-5 actionable insights:\n"
    prompt += _INSIGHTS_JSON_EXAMPLE
    prompt += "\n\nKeep insights supportive, actionable, and specific to the data."
    return prompt


__all__ = [
    "DEFAULT_INSIGHT_ENTRIES",
    "EMOTION_NAMES",
    "build_description_prompt",
    "build_image_prompt",
    "build_insights_prompt",
    "summarize_records",
]
