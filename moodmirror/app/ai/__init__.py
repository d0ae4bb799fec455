"""Emotion classification: Gemini client, prompts, parsing and offline fallback."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

__all__ = [
    "ClassifierError",
    "EmotionClassifier",
    "GeminiClassifier",
    "OfflineClassifier",
]


if TYPE_CHECKING:  # pragma: no cover - import-time helpers for type checkers only
    from .base import EmotionClassifier
    from .errors import ClassifierError
    from .gemini_client import GeminiClassifier
    from .offline import OfflineClassifier


def __getattr__(name: str) -> Any:  # pragma: no cover - thin import shim
    if name == "EmotionClassifier":
        from .base import EmotionClassifier as attr

        return attr
    if name == "ClassifierError":
        from .errors import ClassifierError as attr

        return attr
    if name == "GeminiClassifier":
        from .gemini_client import GeminiClassifier as attr

        return attr
    if name == "OfflineClassifier":
        from .offline import OfflineClassifier as attr

        return attr
    raise AttributeError(name)


def __dir__() -> list[str]:  # pragma: no cover - module introspection helper
    return sorted(__all__)
