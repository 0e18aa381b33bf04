from collections.abc import Sequence
from datetime import datetime

from sqlalchemy.orm import Session

from cellarwatch.models.batch import FermentationBatch, FermentationReading
from cellarwatch.schemas.batch import BatchStatsRead
from cellarwatch.services.batch_lifecycle import get_batch

# Stats field -> reading attribute whose most recent non-null value it reports.
_LATEST_FIELDS: dict[str, str] = {
    "latest_temperature": "temperature",
    "latest_brix": "brix",
    "latest_ph": "ph",
    "latest_alcohol": "alcohol_percent",
}

_SECONDS_PER_DAY = 86400


def _duration_days(batch: FermentationBatch, now: datetime) -> int | None:
    if batch.start_date is None:
        return None
    finished_at = batch.end_date or now
    elapsed = (finished_at - batch.start_date).total_seconds()
    return max(0, int(elapsed / _SECONDS_PER_DAY))


def summarize_readings(
    batch: FermentationBatch,
    readings: Sequence[FermentationReading],
    *,
    now: datetime,
) -> BatchStatsRead:
    """Aggregate a batch's readings in one pass.

    Readings are visited oldest first (ties by insertion id), so each field's
    latest value is simply the last non-null one seen. Temperature extrema and
    the average only consider readings that report a temperature.
    """
    ordered = sorted(readings, key=lambda reading: (reading.recorded_at, reading.id or 0))

    latest: dict[str, float] = {}
    temperature_total = 0.0
    temperature_count = 0
    min_temperature: float | None = None
    max_temperature: float | None = None

    for reading in ordered:
        for stats_field, reading_field in _LATEST_FIELDS.items():
            value = getattr(reading, reading_field)
            if value is not None:
                latest[stats_field] = value

        temperature = reading.temperature
        if temperature is None:
            continue
        temperature_total += temperature
        temperature_count += 1
        min_temperature = temperature if min_temperature is None else min(min_temperature, temperature)
        max_temperature = temperature if max_temperature is None else max(max_temperature, temperature)

    avg_temperature = temperature_total / temperature_count if temperature_count else None

    return BatchStatsRead(
        batch_id=batch.id,
        total_readings=len(ordered),
        avg_temperature=avg_temperature,
        min_temperature=min_temperature,
        max_temperature=max_temperature,
        duration_days=_duration_days(batch, now),
        **latest,
    )


def compute_batch_stats(db: Session, batch_id: int, *, now: datetime | None = None) -> BatchStatsRead:
    batch = get_batch(db, batch_id)
    # One SELECT, so the aggregate sees a single consistent reading set.
    readings = db.query(FermentationReading).filter(FermentationReading.batch_id == batch.id).all()
    return summarize_readings(batch, readings, now=now or datetime.utcnow())
