from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from cellarwatch.core.database import get_db
from cellarwatch.core.security import (
    WRITE_ROLES,
    Principal,
    ensure_batch_owner,
    get_current_principal,
    require_iot_key,
    require_roles,
)
from cellarwatch.models.batch import FermentationReading
from cellarwatch.models.enums import ReadingSource, UserRole
from cellarwatch.schemas.batch import FermentationReadingCreate, FermentationReadingRead, IotReadingCreate
from cellarwatch.services import reading_store
from cellarwatch.services.batch_lifecycle import get_batch

router = APIRouter(prefix="/batches/{batch_id}/readings", tags=["readings"])
iot_router = APIRouter(prefix="/iot", tags=["iot"])


@router.post("", response_model=FermentationReadingRead, status_code=status.HTTP_201_CREATED)
def add_reading(
    batch_id: int,
    payload: FermentationReadingCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> FermentationReading:
    if principal.role == UserRole.worker:
        ensure_batch_owner(principal, get_batch(db, batch_id).created_by)
    return reading_store.append_reading(db, batch_id, payload, clock=datetime.utcnow)


@router.get("", response_model=list[FermentationReadingRead])
def list_readings(
    batch_id: int,
    limit: int | None = Query(default=None, ge=1, le=10000),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> list[FermentationReading]:
    get_batch(db, batch_id)
    return reading_store.list_readings(db, batch_id, limit=limit)


@router.delete("/{reading_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_reading(
    batch_id: int,
    reading_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(*WRITE_ROLES)),
) -> Response:
    reading_store.delete_reading(db, batch_id, reading_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@iot_router.post(
    "/readings",
    response_model=FermentationReadingRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_iot_key)],
)
def add_sensor_reading(
    payload: IotReadingCreate,
    db: Session = Depends(get_db),
) -> FermentationReading:
    reading = FermentationReadingCreate(temperature=payload.temperature, recorded_at=payload.recorded_at)
    return reading_store.append_reading(
        db,
        payload.batch_id,
        reading,
        source=ReadingSource.iot,
        clock=datetime.utcnow,
    )
