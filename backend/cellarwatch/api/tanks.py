from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from cellarwatch.core.database import get_db
from cellarwatch.core.security import WRITE_ROLES, Principal, get_current_principal, require_roles
from cellarwatch.models.batch import FermentationBatch
from cellarwatch.models.enums import UserRole
from cellarwatch.models.tank import Tank
from cellarwatch.schemas.batch import BatchRead
from cellarwatch.schemas.tank import TankCreate, TankRead, TankUpdate
from cellarwatch.services import tank_registry
from cellarwatch.services.batch_lifecycle import list_batches_by_tank

router = APIRouter(prefix="/tanks", tags=["tanks"])


@router.post("", response_model=TankRead, status_code=status.HTTP_201_CREATED)
def create_tank(
    payload: TankCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(*WRITE_ROLES)),
) -> Tank:
    return tank_registry.register_tank(db, payload)


@router.get("", response_model=list[TankRead])
def list_tanks(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> list[Tank]:
    return tank_registry.list_tanks(db)


@router.get("/available", response_model=list[TankRead])
def list_available_tanks(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> list[Tank]:
    return tank_registry.list_available_tanks(db)


@router.get("/{tank_id}", response_model=TankRead)
def get_tank(
    tank_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> TankRead:
    tank = tank_registry.get_tank(db, tank_id)
    response = TankRead.model_validate(tank)
    if tank.current_batch_id is not None:
        active_batch = db.get(FermentationBatch, tank.current_batch_id)
        if active_batch is not None:
            response.active_batch = active_batch.name
    return response


@router.put("/{tank_id}", response_model=TankRead)
def update_tank(
    tank_id: int,
    payload: TankUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(*WRITE_ROLES)),
) -> Tank:
    return tank_registry.update_tank(db, tank_id, payload)


@router.delete("/{tank_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_tank(
    tank_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles(UserRole.admin)),
) -> Response:
    tank_registry.delete_tank(db, tank_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{tank_id}/batches", response_model=list[BatchRead])
def list_tank_batches(
    tank_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> list[FermentationBatch]:
    return list_batches_by_tank(db, tank_id)
