from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol, runtime_checkable

from sqlalchemy import delete, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..db.models import CheckInRecord
from ..metrics import STORAGE_OPERATIONS
from ..schemas.emotion import EmotionAnalysis

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base class for record store failures; ``cause`` keeps the backend error."""

    message = "Storage operation failed"

    def __init__(self, cause: BaseException | None = None, message: str | None = None) -> None:
        self.cause = cause
        detail = message or self.message
        if cause is not None:
            detail = f"{detail}: {cause}"
        super().__init__(detail)


class SaveFailedError(StorageError):
    message = "Failed to save check-in"


class FetchFailedError(StorageError):
    message = "Failed to fetch check-ins"


class DeleteFailedError(StorageError):
    message = "Failed to delete check-in"


class RecordNotFoundError(StorageError):
    message = "Check-in not found"


@runtime_checkable
class RecordStore(Protocol):  # pragma: no cover - structural typing helper
    async def save(self, analysis: EmotionAnalysis, notes: str | None = None) -> CheckInRecord: ...

    async def fetch_all(self) -> list[CheckInRecord]: ...

    async def fetch(self, start: datetime, end: datetime) -> list[CheckInRecord]: ...

    async def delete(self, record: CheckInRecord) -> None: ...

    async def delete_all(self) -> None: ...


class StorageService:
    """Persist and query check-in records."""

    def __init__(self, session_factory: async_sessionmaker) -> None:
        self._session_factory = session_factory

    async def healthcheck(self) -> None:
        async with self._session_factory() as session:
            await session.execute(text("SELECT 1"))

    async def save(self, analysis: EmotionAnalysis, notes: str | None = None) -> CheckInRecord:
        record = CheckInRecord.from_analysis(analysis, notes=notes)
        try:
            async with self._session_factory() as session:
                session.add(record)
                await session.commit()
                await session.refresh(record)
        except SQLAlchemyError as exc:
            STORAGE_OPERATIONS.labels("save", "error").inc()
            logger.error("check-in save failed", extra={"check_in_id": record.id}, exc_info=True)
            raise SaveFailedError(exc) from exc
        STORAGE_OPERATIONS.labels("save", "ok").inc()
        logger.info(
            "check-in saved",
            extra={"check_in_id": record.id, "emotion": record.primary_emotion},
        )
        return record

    async def fetch_all(self) -> list[CheckInRecord]:
        """All records, newest first."""

        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(CheckInRecord).order_by(CheckInRecord.timestamp.desc())
                )
                records = list(result.scalars().all())
        except SQLAlchemyError as exc:
            STORAGE_OPERATIONS.labels("fetch", "error").inc()
            raise FetchFailedError(exc) from exc
        STORAGE_OPERATIONS.labels("fetch", "ok").inc()
        return records

    async def fetch(self, start: datetime, end: datetime) -> list[CheckInRecord]:
        """Records with ``start <= timestamp <= end``, newest first."""

        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(CheckInRecord)
                    .where(
                        CheckInRecord.timestamp >= start,
                        CheckInRecord.timestamp <= end,
                    )
                    .order_by(CheckInRecord.timestamp.desc())
                )
                records = list(result.scalars().all())
        except SQLAlchemyError as exc:
            STORAGE_OPERATIONS.labels("fetch", "error").inc()
            raise FetchFailedError(exc) from exc
        STORAGE_OPERATIONS.labels("fetch", "ok").inc()
        return records

    async def get(self, record_id: str) -> CheckInRecord | None:
        try:
            async with self._session_factory() as session:
                record = await session.get(CheckInRecord, str(record_id))
        except SQLAlchemyError as exc:
            STORAGE_OPERATIONS.labels("get", "error").inc()
            logger.error("check-in lookup failed", extra={"check_in_id": str(record_id)}, exc_info=True)
            raise FetchFailedError(exc) from exc
        STORAGE_OPERATIONS.labels("get", "ok" if record is not None else "missing").inc()
        return record

    async def update_timestamp(self, record_id: str, timestamp: datetime) -> CheckInRecord:
        """Move a record in time, used when backfilling a missed check-in."""

        try:
            async with self._session_factory() as session:
                record = await session.get(CheckInRecord, str(record_id))
                if record is None:
                    STORAGE_OPERATIONS.labels("update", "missing").inc()
                    raise RecordNotFoundError(message=f"Check-in {record_id} not found")
                record.timestamp = timestamp
                await session.commit()
                await session.refresh(record)
        except SQLAlchemyError as exc:
            STORAGE_OPERATIONS.labels("update", "error").inc()
            logger.error(
                "check-in timestamp update failed",
                extra={"check_in_id": str(record_id)},
                exc_info=True,
            )
            raise SaveFailedError(exc) from exc
        STORAGE_OPERATIONS.labels("update", "ok").inc()
        logger.info(
            "check-in timestamp updated",
            extra={"check_in_id": record.id, "extra_fields": {"timestamp": timestamp.isoformat()}},
        )
        return record

    async def delete(self, record: CheckInRecord) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(delete(CheckInRecord).where(CheckInRecord.id == record.id))
                await session.commit()
        except SQLAlchemyError as exc:
            STORAGE_OPERATIONS.labels("delete", "error").inc()
            raise DeleteFailedError(exc) from exc
        STORAGE_OPERATIONS.labels("delete", "ok").inc()
        logger.info("check-in deleted", extra={"check_in_id": record.id})

    async def delete_all(self) -> None:
        try:
            async with self._session_factory() as session:
                result = await session.execute(delete(CheckInRecord))
                await session.commit()
        except SQLAlchemyError as exc:
            STORAGE_OPERATIONS.labels("delete", "error").inc()
            raise DeleteFailedError(exc) from exc
        STORAGE_OPERATIONS.labels("delete", "ok").inc()
        logger.warning("all check-ins deleted", extra={"extra_fields": {"removed": result.rowcount}})


__all__ = [
    "DeleteFailedError",
    "FetchFailedError",
    "RecordNotFoundError",
    "RecordStore",
    "SaveFailedError",
    "StorageError",
    "StorageService",
]
