from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from moodmirror.db import create_engine, create_session_factory, init_db

from .ai import EmotionClassifier, GeminiClassifier, OfflineClassifier
from .checkin.orchestrator import CheckInOrchestrator
from .core.config import Settings, get_settings
from .core.logging import configure_logging
from .insights.generator import InsightsGenerator
from .services.imaging import ImagePreparer
from .services.storage import StorageService
from .services.timeline import TimelineService
from .services.voice import VoiceTranscriber

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    storage: StorageService
    classifier: EmotionClassifier
    image_preparer: ImagePreparer
    insights: InsightsGenerator
    timeline: TimelineService
    transcriber: VoiceTranscriber | None = None

    def new_check_in(self) -> CheckInOrchestrator:
        """Fresh orchestrator sharing the application's collaborators."""

        return CheckInOrchestrator(
            classifier=self.classifier,
            store=self.storage,
            image_preparer=self.image_preparer,
            transcriber=self.transcriber,
        )


def build_classifier(settings: Settings) -> EmotionClassifier:
    if settings.classifier_mode == "offline":
        logger.info("Using offline classifier (CLASSIFIER_MODE=offline)")
        return OfflineClassifier(tz=settings.local_zone)
    if not settings.gemini_configured:
        logger.warning("GEMINI_API_KEY is not set, falling back to offline classifier")
        return OfflineClassifier(tz=settings.local_zone)
    return GeminiClassifier(
        settings.gemini_api_key,
        model=settings.gemini_model,
        base_url=settings.gemini_base_url,
        timeout=settings.request_timeout_seconds,
        temperature=settings.gemini_temperature,
        max_output_tokens=settings.gemini_max_output_tokens,
        insight_entries=settings.insights_max_entries,
        tz=settings.local_zone,
    )


@asynccontextmanager
async def lifespan(
    settings: Settings | None = None,
    *,
    classifier: EmotionClassifier | None = None,
    transcriber: VoiceTranscriber | None = None,
) -> AsyncIterator[AppServices]:
    """Configure application services on entry and release them on exit."""

    settings = settings or get_settings()
    configure_logging(settings)

    engine = create_engine(settings.database_url)
    session_factory = create_session_factory(engine)
    try:
        await init_db(engine, session_factory, settings.version)
        storage_service = StorageService(session_factory)
        await storage_service.healthcheck()

        classifier = classifier or build_classifier(settings)
        services = AppServices(
            settings=settings,
            engine=engine,
            session_factory=session_factory,
            storage=storage_service,
            classifier=classifier,
            image_preparer=ImagePreparer(
                max_dimension=settings.image_max_dimension,
                max_kb=settings.image_max_kb,
            ),
            insights=InsightsGenerator(
                storage_service,
                classifier,
                window_days=settings.insights_window_days,
                tz=settings.local_zone,
            ),
            timeline=TimelineService(storage_service, tz=settings.local_zone),
            transcriber=transcriber,
        )

        logger.info(
            "MoodMirror started version=%s classifier=%s",
            settings.version,
            type(classifier).__name__,
        )
        yield services
    finally:
        await engine.dispose()


__all__ = ["AppServices", "build_classifier", "lifespan"]
