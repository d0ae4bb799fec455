from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, tzinfo

from ..ai.base import EmotionClassifier
from ..ai.errors import ClassifierError
from ..schemas.analytics import InsightsReport
from ..services.storage import RecordStore, StorageError
from ..utils.time import utc_now
from .analytics import StreakMode, emotion_streak, most_common_emotion

logger = logging.getLogger(__name__)


class InsightsGenerator:
    """Combine local statistics with a narrative pattern summary from the classifier."""

    def __init__(
        self,
        store: RecordStore,
        classifier: EmotionClassifier,
        *,
        window_days: int = 30,
        streak_mode: StreakMode = StreakMode.CALENDAR,
        tz: tzinfo | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._classifier = classifier
        self._window_days = max(1, window_days)
        self._streak_mode = streak_mode
        self._tz = tz
        self._clock = clock or utc_now
        self._loading = False
        self._report: InsightsReport | None = None
        self._last_error: Exception | None = None

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def report(self) -> InsightsReport | None:
        return self._report

    @property
    def last_error(self) -> Exception | None:
        return self._last_error

    async def generate(self) -> InsightsReport:
        now = self._clock()
        window_start = now - timedelta(days=self._window_days)
        self._loading = True
        self._last_error = None
        try:
            records = await self._store.fetch(window_start, now)
            if not records:
                logger.info("no check-ins in insight window, skipping classifier")
                report = InsightsReport(
                    window_start=window_start,
                    window_end=now,
                    generated_at=now,
                )
            else:
                common = most_common_emotion(records)
                streak = emotion_streak(records, mode=self._streak_mode, tz=self._tz)
                insights = await self._classifier.generate_insights(records)
                report = InsightsReport(
                    insights=insights,
                    most_common_emotion=common,
                    streak=streak,
                    records_analyzed=len(records),
                    window_start=window_start,
                    window_end=now,
                    generated_at=now,
                )
        except (StorageError, ClassifierError) as exc:
            self._last_error = exc
            logger.warning(
                "insight generation failed",
                extra={"operation": "generate_insights", "extra_fields": {"error": str(exc)}},
            )
            raise
        finally:
            self._loading = False

        self._report = report
        logger.info(
            "insights generated",
            extra={
                "emotion": report.most_common_emotion.value if report.most_common_emotion else None,
                "extra_fields": {
                    "records": report.records_analyzed,
                    "insights": len(report.insights),
                },
            },
        )
        return report

    async def refresh(self) -> InsightsReport:
        return await self.generate()


__all__ = ["InsightsGenerator"]
