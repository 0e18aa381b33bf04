from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from cellarwatch.core.errors import IllegalStateError, NotFoundError, ValidationError
from cellarwatch.models.batch import FermentationBatch, FermentationReading
from cellarwatch.models.enums import TERMINAL_BATCH_STATUSES, BatchStatus, ReadingSource
from cellarwatch.schemas.batch import FermentationReadingCreate

logger = logging.getLogger("cellarwatch.readings")

MEASUREMENT_FIELDS: tuple[str, ...] = (
    "temperature",
    "brix",
    "ph",
    "density",
    "alcohol_percent",
    "volatile_acidity",
    "free_so2",
    "total_so2",
    "color",
    "clarity",
    "aroma_notes",
    "notes",
)


def _check_accepts_readings(status: str, source: ReadingSource) -> None:
    if status in TERMINAL_BATCH_STATUSES:
        raise IllegalStateError(f"Cannot add readings to a {status} batch")
    if source == ReadingSource.iot and status != BatchStatus.active:
        raise IllegalStateError("Sensor readings are only accepted for active batches")


def append_reading(
    db: Session,
    batch_id: int,
    payload: FermentationReadingCreate,
    *,
    source: ReadingSource = ReadingSource.manual,
    clock: Callable[[], datetime] | None = None,
) -> FermentationReading:
    # Shared row lock where supported: appends run side by side, a status
    # transition (exclusive row update) waits for them.
    batch = (
        db.query(FermentationBatch)
        .filter(FermentationBatch.id == batch_id)
        .with_for_update(read=True)
        .first()
    )
    if batch is None:
        raise NotFoundError("Fermentation batch not found")
    _check_accepts_readings(batch.status, source)

    recorded_at = payload.recorded_at
    if recorded_at is None:
        if clock is None:
            raise ValidationError("Reading has no recorded_at and no clock was supplied")
        recorded_at = clock()

    reading = FermentationReading(
        batch_id=batch.id,
        recorded_at=recorded_at,
        source=source.value,
        **payload.model_dump(include=set(MEASUREMENT_FIELDS)),
    )
    # The flush takes the write lock (SQLite has no row locks), so the status
    # read back below cannot change again before this commit.
    try:
        db.add(reading)
        db.flush()
        current_status = (
            db.query(FermentationBatch.status).filter(FermentationBatch.id == batch.id).scalar()
        )
        if current_status is None:
            raise NotFoundError("Fermentation batch not found")
        _check_accepts_readings(current_status, source)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(reading)

    logger.info(
        json.dumps(
            {
                "event": "reading_appended",
                "batch_id": batch_id,
                "reading_id": reading.id,
                "source": reading.source,
                "recorded_at": reading.recorded_at.isoformat(),
            }
        )
    )
    return reading


def list_readings(db: Session, batch_id: int, limit: int | None = None) -> list[FermentationReading]:
    """Readings for a batch, most recent first; ties go to the later insert."""
    if limit is not None and limit < 0:
        raise ValidationError("Reading limit cannot be negative")

    query = (
        db.query(FermentationReading)
        .filter(FermentationReading.batch_id == batch_id)
        .order_by(FermentationReading.recorded_at.desc(), FermentationReading.id.desc())
    )
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def latest_reading(db: Session, batch_id: int) -> FermentationReading | None:
    readings = list_readings(db, batch_id, limit=1)
    return readings[0] if readings else None


def latest_readings_for(db: Session, batch_ids: Iterable[int]) -> dict[int, FermentationReading]:
    """Most recent reading per batch, resolved in one windowed query."""
    ids = list(batch_ids)
    if not ids:
        return {}

    ranked = (
        select(
            FermentationReading.id.label("reading_id"),
            func.row_number()
            .over(
                partition_by=FermentationReading.batch_id,
                order_by=(FermentationReading.recorded_at.desc(), FermentationReading.id.desc()),
            )
            .label("position"),
        )
        .where(FermentationReading.batch_id.in_(ids))
        .subquery()
    )

    rows = (
        db.query(FermentationReading)
        .join(ranked, ranked.c.reading_id == FermentationReading.id)
        .filter(ranked.c.position == 1)
        .all()
    )
    return {reading.batch_id: reading for reading in rows}


def delete_reading(db: Session, batch_id: int, reading_id: int) -> None:
    reading = (
        db.query(FermentationReading)
        .filter(
            FermentationReading.id == reading_id,
            FermentationReading.batch_id == batch_id,
        )
        .first()
    )
    if reading is None:
        raise NotFoundError("Fermentation reading not found")

    db.delete(reading)
    db.commit()
    logger.info(json.dumps({"event": "reading_deleted", "batch_id": batch_id, "reading_id": reading_id}))
