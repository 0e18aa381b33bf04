from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from cellarwatch.core.database import get_db
from cellarwatch.core.security import WRITE_ROLES, Principal, ensure_batch_owner, get_current_principal, require_roles
from cellarwatch.models.batch import FermentationBatch
from cellarwatch.schemas.batch import (
    BatchCreate,
    BatchRead,
    BatchStatsRead,
    BatchTransitionRequest,
    BatchUpdate,
    FermentationReadingRead,
)
from cellarwatch.services import batch_lifecycle
from cellarwatch.services.batch_lifecycle import BatchWithLatestReading
from cellarwatch.services.batch_stats import compute_batch_stats

router = APIRouter(prefix="/batches", tags=["batches"])


def _get_owned_batch(db: Session, batch_id: int, principal: Principal) -> FermentationBatch:
    batch = batch_lifecycle.get_batch(db, batch_id)
    ensure_batch_owner(principal, batch.created_by)
    return batch


def _to_read(item: BatchWithLatestReading) -> BatchRead:
    response = BatchRead.model_validate(item.batch)
    if item.latest_reading is not None:
        response.latest_reading = FermentationReadingRead.model_validate(item.latest_reading)
    return response


@router.post("", response_model=BatchRead, status_code=status.HTTP_201_CREATED)
def create_batch(
    payload: BatchCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(*WRITE_ROLES)),
) -> FermentationBatch:
    return batch_lifecycle.create_batch(db, payload, created_by=principal.subject)


@router.get("", response_model=list[BatchRead])
def list_batches(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> list[BatchRead]:
    batches = batch_lifecycle.list_batches(db)
    return [_to_read(item) for item in batch_lifecycle.with_latest_readings(db, batches)]


@router.get("/active", response_model=list[BatchRead])
def list_active_batches(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> list[BatchRead]:
    return [_to_read(item) for item in batch_lifecycle.get_active_batches(db)]


@router.get("/{batch_id}", response_model=BatchRead)
def get_batch(
    batch_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> BatchRead:
    batch = batch_lifecycle.get_batch(db, batch_id)
    [item] = batch_lifecycle.with_latest_readings(db, [batch])
    return _to_read(item)


@router.put("/{batch_id}", response_model=BatchRead)
def update_batch(
    batch_id: int,
    payload: BatchUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(*WRITE_ROLES)),
) -> FermentationBatch:
    _get_owned_batch(db, batch_id, principal)
    return batch_lifecycle.update_batch(db, batch_id, payload)


@router.delete("/{batch_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_batch(
    batch_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(*WRITE_ROLES)),
) -> Response:
    _get_owned_batch(db, batch_id, principal)
    batch_lifecycle.delete_batch(db, batch_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{batch_id}/stats", response_model=BatchStatsRead)
def get_batch_stats(
    batch_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> BatchStatsRead:
    return compute_batch_stats(db, batch_id)


@router.post("/{batch_id}/pause", response_model=BatchRead)
def pause_batch(
    batch_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(*WRITE_ROLES)),
) -> FermentationBatch:
    _get_owned_batch(db, batch_id, principal)
    return batch_lifecycle.pause_batch(db, batch_id)


@router.post("/{batch_id}/resume", response_model=BatchRead)
def resume_batch(
    batch_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(*WRITE_ROLES)),
) -> FermentationBatch:
    _get_owned_batch(db, batch_id, principal)
    return batch_lifecycle.resume_batch(db, batch_id)


@router.post("/{batch_id}/complete", response_model=BatchRead)
def complete_batch(
    batch_id: int,
    payload: BatchTransitionRequest | None = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(*WRITE_ROLES)),
) -> FermentationBatch:
    _get_owned_batch(db, batch_id, principal)
    payload = payload or BatchTransitionRequest()
    return batch_lifecycle.complete_batch(
        db,
        batch_id,
        end_date=payload.end_date,
        release_tank_to=payload.release_tank_to,
    )


@router.post("/{batch_id}/cancel", response_model=BatchRead)
def cancel_batch(
    batch_id: int,
    payload: BatchTransitionRequest | None = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(*WRITE_ROLES)),
) -> FermentationBatch:
    _get_owned_batch(db, batch_id, principal)
    payload = payload or BatchTransitionRequest()
    return batch_lifecycle.cancel_batch(
        db,
        batch_id,
        end_date=payload.end_date,
        release_tank_to=payload.release_tank_to,
    )
