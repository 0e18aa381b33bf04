"""Fermentation batch lifecycle.

A batch is created ``active`` together with the reservation of its tank, may
be paused and resumed any number of times, and ends ``completed`` or
``cancelled``, which releases the tank. Status changes are compare-and-set on
the batch row, so of two racing transitions from the same state only one
commits.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.orm import Session

from cellarwatch.core.errors import ConflictError, IllegalStateError, NotFoundError, ValidationError
from cellarwatch.models.batch import FermentationBatch, FermentationReading
from cellarwatch.models.enums import TERMINAL_BATCH_STATUSES, BatchStatus, TankStatus
from cellarwatch.schemas.batch import BatchCreate, BatchUpdate
from cellarwatch.services.reading_store import latest_readings_for
from cellarwatch.services.tank_registry import get_tank, release_tank, reserve_tank

logger = logging.getLogger("cellarwatch.lifecycle")

ALLOWED_TRANSITIONS: dict[BatchStatus, frozenset[BatchStatus]] = {
    BatchStatus.active: frozenset({BatchStatus.paused, BatchStatus.completed, BatchStatus.cancelled}),
    BatchStatus.paused: frozenset({BatchStatus.active, BatchStatus.completed, BatchStatus.cancelled}),
    BatchStatus.completed: frozenset(),
    BatchStatus.cancelled: frozenset(),
}


@dataclass
class BatchWithLatestReading:
    batch: FermentationBatch
    latest_reading: FermentationReading | None


def _log(event: str, batch: FermentationBatch, **extra: object) -> None:
    payload = {"event": event, "batch_id": batch.id, "tank_id": batch.tank_id, "status": batch.status}
    payload.update(extra)
    logger.info(json.dumps(payload, default=str))


def get_batch(db: Session, batch_id: int) -> FermentationBatch:
    batch = db.get(FermentationBatch, batch_id)
    if batch is None:
        raise NotFoundError("Fermentation batch not found")
    return batch


def create_batch(
    db: Session,
    payload: BatchCreate,
    *,
    created_by: str,
    clock: Callable[[], datetime] = datetime.utcnow,
) -> FermentationBatch:
    if payload.volume_liters <= 0:
        raise ValidationError("Batch volume must be greater than zero")

    tank = get_tank(db, payload.tank_id)
    if tank.status != TankStatus.available:
        raise ConflictError(f"Tank '{tank.name}' is not available (status: {tank.status})")
    if payload.volume_liters > tank.capacity_liters:
        raise ValidationError(
            f"Volume ({payload.volume_liters} L) exceeds tank capacity ({tank.capacity_liters} L)"
        )

    now = clock()
    batch = FermentationBatch(
        tank_id=tank.id,
        harvest_id=payload.harvest_id,
        name=payload.name,
        grape_variety=payload.grape_variety,
        volume_liters=payload.volume_liters,
        status=BatchStatus.active.value,
        target_temperature=payload.target_temperature,
        yeast_strain=payload.yeast_strain,
        initial_brix=payload.initial_brix,
        initial_ph=payload.initial_ph,
        start_date=payload.start_date or now,
        expected_end_date=payload.expected_end_date,
        notes=payload.notes,
        created_by=created_by,
    )

    # Batch row and tank reservation are one transaction: both or neither.
    try:
        db.add(batch)
        db.flush()
        reserve_tank(db, tank.id, batch.id)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(batch)
    _log("batch_created", batch, volume_liters=batch.volume_liters, created_by=created_by)
    return batch


def list_batches(db: Session) -> list[FermentationBatch]:
    return (
        db.query(FermentationBatch)
        .order_by(FermentationBatch.created_at.desc(), FermentationBatch.id.desc())
        .all()
    )


def list_batches_by_tank(db: Session, tank_id: int) -> list[FermentationBatch]:
    get_tank(db, tank_id)
    return (
        db.query(FermentationBatch)
        .filter(FermentationBatch.tank_id == tank_id)
        .order_by(FermentationBatch.created_at.desc(), FermentationBatch.id.desc())
        .all()
    )


def with_latest_readings(db: Session, batches: list[FermentationBatch]) -> list[BatchWithLatestReading]:
    latest = latest_readings_for(db, [batch.id for batch in batches])
    return [BatchWithLatestReading(batch=batch, latest_reading=latest.get(batch.id)) for batch in batches]


def get_active_batches(db: Session) -> list[BatchWithLatestReading]:
    batches = (
        db.query(FermentationBatch)
        .filter(FermentationBatch.status == BatchStatus.active.value)
        .order_by(FermentationBatch.start_date.desc(), FermentationBatch.id.desc())
        .all()
    )
    return with_latest_readings(db, batches)


def _check_transition(current: BatchStatus, target: BatchStatus) -> None:
    if target not in ALLOWED_TRANSITIONS[current]:
        raise IllegalStateError(f"Cannot move batch from {current.value} to {target.value}")


def transition_batch(
    db: Session,
    batch_id: int,
    target: BatchStatus,
    *,
    end_date: datetime | None = None,
    release_tank_to: TankStatus = TankStatus.available,
    clock: Callable[[], datetime] = datetime.utcnow,
) -> FermentationBatch:
    """Move a batch to ``target``; terminal targets release its tank in the same commit.

    Pending attribute changes on the batch are committed along with the
    transition, or discarded with it.
    """
    batch = get_batch(db, batch_id)
    current = BatchStatus(batch.status)
    _check_transition(current, target)

    now = clock()
    values: dict[str, object] = {"status": target.value, "updated_at": now}
    if target in TERMINAL_BATCH_STATUSES:
        if release_tank_to == TankStatus.in_use:
            raise ValidationError("A finished batch cannot leave its tank in use")
        values["end_date"] = end_date or batch.end_date or now

    try:
        result = db.execute(
            update(FermentationBatch)
            .where(
                FermentationBatch.id == batch.id,
                FermentationBatch.status == current.value,
            )
            .values(**values)
        )
        if result.rowcount == 0:
            raise IllegalStateError("Batch status changed concurrently; reload and retry")

        if target in TERMINAL_BATCH_STATUSES:
            release_tank(db, batch.tank_id, batch_id=batch.id, next_status=release_tank_to)

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(batch)
    _log("batch_transitioned", batch, previous_status=current.value)
    return batch


def pause_batch(db: Session, batch_id: int) -> FermentationBatch:
    return transition_batch(db, batch_id, BatchStatus.paused)


def resume_batch(db: Session, batch_id: int) -> FermentationBatch:
    return transition_batch(db, batch_id, BatchStatus.active)


def complete_batch(
    db: Session,
    batch_id: int,
    *,
    end_date: datetime | None = None,
    release_tank_to: TankStatus = TankStatus.available,
) -> FermentationBatch:
    return transition_batch(
        db,
        batch_id,
        BatchStatus.completed,
        end_date=end_date,
        release_tank_to=release_tank_to,
    )


def cancel_batch(
    db: Session,
    batch_id: int,
    *,
    end_date: datetime | None = None,
    release_tank_to: TankStatus = TankStatus.available,
) -> FermentationBatch:
    return transition_batch(
        db,
        batch_id,
        BatchStatus.cancelled,
        end_date=end_date,
        release_tank_to=release_tank_to,
    )


def update_batch(db: Session, batch_id: int, payload: BatchUpdate) -> FermentationBatch:
    batch = get_batch(db, batch_id)
    updates = payload.model_dump(exclude_unset=True)
    new_status = updates.pop("status", None)
    release_tank_to = updates.pop("release_tank_to", TankStatus.available)

    if "name" in updates and updates["name"] is None:
        raise ValidationError("Batch name cannot be cleared")

    current = BatchStatus(batch.status)
    target: BatchStatus | None = None
    if new_status is not None:
        _check_transition(current, new_status)
        target = new_status

    end_date = updates.get("end_date")
    finishing = current in TERMINAL_BATCH_STATUSES or (target is not None and target in TERMINAL_BATCH_STATUSES)
    if end_date is not None and not finishing:
        raise ValidationError("end_date can only be set on a completed or cancelled batch")

    for field, value in updates.items():
        setattr(batch, field, value)

    if target is not None:
        return transition_batch(
            db,
            batch.id,
            target,
            end_date=end_date,
            release_tank_to=release_tank_to,
        )

    db.add(batch)
    db.commit()
    db.refresh(batch)
    _log("batch_updated", batch, fields=sorted(updates))
    return batch


def delete_batch(db: Session, batch_id: int) -> None:
    batch = get_batch(db, batch_id)
    if batch.status not in TERMINAL_BATCH_STATUSES:
        raise IllegalStateError("Cannot delete a batch that still occupies its tank; complete or cancel it first")

    db.delete(batch)
    db.commit()
    logger.info(json.dumps({"event": "batch_deleted", "batch_id": batch_id}))
