from __future__ import annotations

from datetime import date, datetime, tzinfo

from ..db.models import CheckInRecord
from ..insights.analytics import group_by_day
from ..schemas.emotion import EmotionKind
from .storage import RecordStore


class TimelineService:
    """Browse, filter and delete stored check-ins."""

    def __init__(self, store: RecordStore, *, tz: tzinfo | None = None) -> None:
        self._store = store
        self._tz = tz
        self._records: list[CheckInRecord] = []

    @property
    def records(self) -> list[CheckInRecord]:
        return list(self._records)

    async def load(self) -> list[CheckInRecord]:
        self._records = await self._store.fetch_all()
        return self.records

    async def load_range(self, start: datetime, end: datetime) -> list[CheckInRecord]:
        self._records = await self._store.fetch(start, end)
        return self.records

    async def delete(self, record: CheckInRecord) -> None:
        await self._store.delete(record)
        self._records = [item for item in self._records if item.id != record.id]

    def filtered(
        self,
        *,
        emotion: EmotionKind | None = None,
        search: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[CheckInRecord]:
        """Loaded records matching every given filter, newest first."""

        result = self._records
        if emotion is not None:
            result = [record for record in result if record.primary_emotion == emotion.value]
        if start is not None:
            result = [record for record in result if record.timestamp >= start]
        if end is not None:
            result = [record for record in result if record.timestamp <= end]
        needle = (search or "").strip().lower()
        if needle:
            result = [
                record
                for record in result
                if needle in record.primary_emotion.lower()
                or needle in (record.notes or "").lower()
            ]
        return sorted(result, key=lambda record: record.timestamp, reverse=True)

    def grouped(self, **filters) -> dict[date, list[CheckInRecord]]:
        return group_by_day(self.filtered(**filters), self._tz)

    def sorted_days(self, **filters) -> list[date]:
        return sorted(self.grouped(**filters), reverse=True)


__all__ = ["TimelineService"]
