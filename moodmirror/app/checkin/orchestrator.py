from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import NoReturn

from PIL import Image

from ..ai.base import EmotionClassifier
from ..ai.errors import ClassifierError
from ..db.models import CheckInRecord
from ..metrics import CHECKINS_TOTAL, TRANSCRIPTION_FAILURES
from ..schemas.emotion import EmotionAnalysis
from ..services.imaging import ImagePreparationError, ImagePreparer
from ..services.storage import RecordStore, StorageError
from ..services.voice import VoiceAnalysisError, VoiceTranscriber

logger = logging.getLogger(__name__)


class CheckInStep(str, Enum):
    AWAITING_PHOTO = "awaiting_photo"
    AWAITING_VOICE = "awaiting_voice"
    AWAITING_NOTES = "awaiting_notes"
    CLASSIFYING = "classifying"
    DONE = "done"


class CheckInError(Exception):
    """Base class for check-in flow failures raised by the orchestrator."""


class MissingPhotoError(CheckInError):
    def __init__(self) -> None:
        super().__init__("No photo captured")


class NoPendingAnalysisError(CheckInError):
    def __init__(self) -> None:
        super().__init__("There is no unsaved analysis to retry")


@dataclass(frozen=True)
class VoiceEnrichment:
    tone: str | None = None
    transcript: str | None = None


class CheckInOrchestrator:
    """Drive one check-in from captured photo to a persisted record.

    One instance handles one check-in at a time; callers must not run two
    ``submit`` calls concurrently. Only ``submit`` and ``retry_save`` touch
    the record store, everything else is in-memory state.
    """

    def __init__(
        self,
        *,
        classifier: EmotionClassifier,
        store: RecordStore,
        image_preparer: ImagePreparer,
        transcriber: VoiceTranscriber | None = None,
    ) -> None:
        self._classifier = classifier
        self._store = store
        self._image_preparer = image_preparer
        self._transcriber = transcriber
        self._clear()

    def _clear(self) -> None:
        self._step = CheckInStep.AWAITING_PHOTO
        self._photo: Image.Image | bytes | None = None
        self._voice_clip: str | None = None
        self._notes = ""
        self._analysis: EmotionAnalysis | None = None
        self._record: CheckInRecord | None = None
        self._pending_analysis: EmotionAnalysis | None = None
        self._last_error: Exception | None = None

    # -- state -----------------------------------------------------------
    @property
    def step(self) -> CheckInStep:
        return self._step

    @property
    def photo(self) -> Image.Image | bytes | None:
        return self._photo

    @property
    def voice_clip(self) -> str | None:
        return self._voice_clip

    @property
    def notes(self) -> str:
        return self._notes

    @property
    def analysis(self) -> EmotionAnalysis | None:
        return self._analysis

    @property
    def record(self) -> CheckInRecord | None:
        return self._record

    @property
    def pending_analysis(self) -> EmotionAnalysis | None:
        """Classifier result kept after a failed save, see ``retry_save``."""

        return self._pending_analysis

    @property
    def last_error(self) -> Exception | None:
        return self._last_error

    @property
    def is_classifying(self) -> bool:
        return self._step is CheckInStep.CLASSIFYING

    # -- capture steps ---------------------------------------------------
    def submit_photo(self, image: Image.Image | bytes | None) -> None:
        if image is None:
            raise MissingPhotoError()
        self._photo = image
        self._step = CheckInStep.AWAITING_VOICE

    def submit_voice(self, clip: str) -> None:
        self._voice_clip = clip
        self._step = CheckInStep.AWAITING_NOTES

    def skip_voice(self) -> None:
        self._voice_clip = None
        self._step = CheckInStep.AWAITING_NOTES

    def set_notes(self, text: str) -> None:
        self._notes = text

    def go_back(self) -> None:
        if self._step is CheckInStep.AWAITING_VOICE:
            self._photo = None
            self._step = CheckInStep.AWAITING_PHOTO
        elif self._step is CheckInStep.AWAITING_NOTES:
            self._voice_clip = None
            self._step = CheckInStep.AWAITING_VOICE

    def reset(self) -> None:
        self._clear()

    # -- submission ------------------------------------------------------
    async def submit(self) -> EmotionAnalysis:
        """Classify the captured check-in and persist it.

        Raises ``MissingPhotoError`` without a photo, ``ImagePreparationError``
        or ``ClassifierError`` when analysis fails and ``StorageError`` when
        the record cannot be saved. Transcriber failures of any kind only drop
        the voice context. After a failure, expected or not, the flow is back
        at ``AWAITING_NOTES`` with the captured data in place so the caller can
        submit again.
        """

        self._last_error = None
        if self._photo is None:
            self._step = CheckInStep.AWAITING_PHOTO
            self._fail(MissingPhotoError(), "missing_photo")

        self._step = CheckInStep.CLASSIFYING
        self._pending_analysis = None
        logger.info("check-in submitted", extra={"step": self._step.value})

        try:
            voice = await self._enrich_with_voice()
            prepared = await self._image_preparer.prepare_async(self._photo)
            logger.info(
                "sending photo to classifier",
                extra={"extra_fields": {"bytes": len(prepared.data), "quality": prepared.quality}},
            )
            analysis = await self._classifier.analyze_image(
                prepared.data,
                voice_tone=voice.tone,
                transcript=voice.transcript,
            )
        except ImagePreparationError as exc:
            self._step = CheckInStep.AWAITING_NOTES
            self._fail(exc, "image_error")
        except ClassifierError as exc:
            self._step = CheckInStep.AWAITING_NOTES
            self._fail(exc, f"classifier_{exc.category}")
        except asyncio.CancelledError:
            self._step = CheckInStep.AWAITING_NOTES
            CHECKINS_TOTAL.labels("cancelled").inc()
            raise
        except Exception as exc:
            self._step = CheckInStep.AWAITING_NOTES
            self._fail(exc, "unexpected_error")

        await self._persist(analysis)
        return analysis

    async def retry_save(self) -> EmotionAnalysis:
        """Persist the analysis of a submit whose save failed, without reclassifying."""

        analysis = self._pending_analysis
        if analysis is None:
            raise NoPendingAnalysisError()
        self._last_error = None
        self._step = CheckInStep.CLASSIFYING
        await self._persist(analysis)
        return analysis

    async def _persist(self, analysis: EmotionAnalysis) -> None:
        try:
            record = await self._store.save(analysis, self._notes_for_record())
        except StorageError as exc:
            self._pending_analysis = analysis
            self._step = CheckInStep.AWAITING_NOTES
            self._fail(exc, "storage_error")
        except asyncio.CancelledError:
            self._pending_analysis = analysis
            self._step = CheckInStep.AWAITING_NOTES
            CHECKINS_TOTAL.labels("cancelled").inc()
            raise
        except Exception as exc:
            self._pending_analysis = analysis
            self._step = CheckInStep.AWAITING_NOTES
            self._fail(exc, "unexpected_error")

        self._pending_analysis = None
        self._analysis = analysis
        self._record = record
        self._step = CheckInStep.DONE
        CHECKINS_TOTAL.labels("ok").inc()
        logger.info(
            "check-in complete",
            extra={
                "check_in_id": record.id,
                "emotion": analysis.primary_emotion.value,
                "step": self._step.value,
            },
        )

    async def _enrich_with_voice(self) -> VoiceEnrichment:
        if self._voice_clip is None:
            return VoiceEnrichment()
        if self._transcriber is None:
            logger.info("voice clip ignored, no transcriber configured")
            return VoiceEnrichment()
        try:
            result = await self._transcriber.transcribe(self._voice_clip)
        except Exception as exc:
            # voice is enrichment only; classification goes ahead without it
            TRANSCRIPTION_FAILURES.inc()
            logger.warning(
                "voice analysis failed, continuing without voice",
                extra={"extra_fields": {"error": str(exc), "error_type": type(exc).__name__}},
                exc_info=not isinstance(exc, VoiceAnalysisError),
            )
            return VoiceEnrichment()
        return VoiceEnrichment(tone=result.voice_tone, transcript=result.transcription or None)

    def _notes_for_record(self) -> str | None:
        return self._notes if self._notes.strip() else None

    def _fail(self, exc: Exception, result: str) -> NoReturn:
        self._last_error = exc
        CHECKINS_TOTAL.labels(result).inc()
        logger.warning(
            "check-in failed",
            extra={
                "step": self._step.value,
                "status": result,
                "extra_fields": {"error": str(exc)},
            },
        )
        raise exc


__all__ = [
    "CheckInError",
    "CheckInOrchestrator",
    "CheckInStep",
    "MissingPhotoError",
    "NoPendingAnalysisError",
    "VoiceEnrichment",
]
