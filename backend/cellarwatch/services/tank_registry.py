"""Tank inventory and availability.

``reserve_tank`` and ``release_tank`` are compare-and-set updates on the tank
row and never commit; they run inside the caller's batch transaction so the
batch and tank sides of the tank/batch relation commit together.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.orm import Session

from cellarwatch.core.errors import ConflictError, IllegalStateError, NotFoundError, ValidationError
from cellarwatch.models.batch import FermentationBatch
from cellarwatch.models.enums import TankMaterial, TankStatus
from cellarwatch.models.tank import Tank
from cellarwatch.schemas.tank import TankCreate, TankUpdate

logger = logging.getLogger("cellarwatch.tanks")

# Statuses a tank may be left in when nothing occupies it.
IDLE_TANK_STATUSES = frozenset({TankStatus.available, TankStatus.cleaning, TankStatus.maintenance})


def _validate_capacity(capacity_liters: float) -> None:
    if capacity_liters <= 0:
        raise ValidationError("Tank capacity must be greater than zero")


def _validate_material(material: str) -> TankMaterial:
    try:
        return TankMaterial(material)
    except ValueError as exc:
        raise ValidationError(f"Unknown tank material '{material}'") from exc


def _validate_idle_status(status: str) -> TankStatus:
    try:
        tank_status = TankStatus(status)
    except ValueError as exc:
        raise ValidationError(f"Unknown tank status '{status}'") from exc
    if tank_status not in IDLE_TANK_STATUSES:
        raise ValidationError(f"Tank status '{tank_status.value}' is managed by the batch lifecycle")
    return tank_status


def get_tank(db: Session, tank_id: int) -> Tank:
    tank = db.get(Tank, tank_id)
    if tank is None:
        raise NotFoundError("Tank not found")
    return tank


def _reload_tank(db: Session, tank_id: int) -> Tank:
    tank = db.get(Tank, tank_id, populate_existing=True)
    if tank is None:
        raise NotFoundError("Tank not found")
    return tank


def register_tank(db: Session, payload: TankCreate) -> Tank:
    _validate_capacity(payload.capacity_liters)
    material = _validate_material(payload.material)

    tank = Tank(
        name=payload.name,
        capacity_liters=payload.capacity_liters,
        material=material.value,
        status=TankStatus.available.value,
        location=payload.location,
        notes=payload.notes,
    )
    db.add(tank)
    db.commit()
    db.refresh(tank)

    logger.info(json.dumps({"event": "tank_registered", "tank_id": tank.id, "capacity_liters": tank.capacity_liters}))
    return tank


def list_tanks(db: Session) -> list[Tank]:
    return db.query(Tank).order_by(Tank.name.asc(), Tank.id.asc()).all()


def list_available_tanks(db: Session) -> list[Tank]:
    return (
        db.query(Tank)
        .filter(Tank.status == TankStatus.available.value)
        .order_by(Tank.name.asc(), Tank.id.asc())
        .all()
    )


def reserve_tank(db: Session, tank_id: int, batch_id: int) -> None:
    result = db.execute(
        update(Tank)
        .where(Tank.id == tank_id, Tank.status == TankStatus.available.value)
        .values(
            status=TankStatus.in_use.value,
            current_batch_id=batch_id,
            updated_at=datetime.utcnow(),
        )
    )
    if result.rowcount == 0:
        tank = _reload_tank(db, tank_id)
        raise ConflictError(f"Tank '{tank.name}' is not available (status: {tank.status})")


def release_tank(
    db: Session,
    tank_id: int,
    *,
    batch_id: int | None = None,
    next_status: TankStatus = TankStatus.available,
) -> None:
    """Move an in-use tank back to an idle status and clear its batch reference.

    When ``batch_id`` is given the release only applies if that batch is the
    one occupying the tank.
    """
    target_status = _validate_idle_status(next_status)

    criteria = [Tank.id == tank_id, Tank.status == TankStatus.in_use.value]
    if batch_id is not None:
        criteria.append(Tank.current_batch_id == batch_id)

    result = db.execute(
        update(Tank)
        .where(*criteria)
        .values(
            status=target_status.value,
            current_batch_id=None,
            updated_at=datetime.utcnow(),
        )
    )
    if result.rowcount == 0:
        tank = _reload_tank(db, tank_id)
        if tank.status != TankStatus.in_use:
            raise IllegalStateError(f"Tank '{tank.name}' is not in use (status: {tank.status})")
        raise IllegalStateError(f"Tank '{tank.name}' is occupied by batch {tank.current_batch_id}, not {batch_id}")


def update_tank(db: Session, tank_id: int, payload: TankUpdate) -> Tank:
    tank = get_tank(db, tank_id)
    updates = payload.model_dump(exclude_unset=True)

    new_status = updates.pop("status", None)
    if "capacity_liters" in updates and updates["capacity_liters"] is not None:
        _validate_capacity(updates["capacity_liters"])
    if "material" in updates and updates["material"] is not None:
        updates["material"] = _validate_material(updates["material"]).value

    for field in ("name", "capacity_liters", "material"):
        if field in updates and updates[field] is None:
            raise ValidationError(f"Tank {field} cannot be cleared")

    target_status: TankStatus | None = None
    if new_status is not None and new_status != tank.status:
        if tank.status == TankStatus.in_use:
            raise IllegalStateError(f"Tank '{tank.name}' is in use; finish its batch before changing status")
        target_status = _validate_idle_status(new_status)

    for field, value in updates.items():
        setattr(tank, field, value)

    if target_status is not None:
        result = db.execute(
            update(Tank)
            .where(Tank.id == tank.id, Tank.status == tank.status)
            .values(status=target_status.value, updated_at=datetime.utcnow())
        )
        if result.rowcount == 0:
            db.rollback()
            raise ConflictError(f"Tank '{tank.name}' changed status concurrently")

    db.add(tank)
    db.commit()
    db.refresh(tank)
    return tank


def delete_tank(db: Session, tank_id: int) -> None:
    tank = get_tank(db, tank_id)
    if tank.status == TankStatus.in_use:
        raise ConflictError("Cannot delete tank with an active fermentation batch")

    has_history = db.query(FermentationBatch.id).filter(FermentationBatch.tank_id == tank.id).first()
    if has_history is not None:
        raise ConflictError("Cannot delete tank with fermentation history; delete its batches first")

    db.delete(tank)
    db.commit()
    logger.info(json.dumps({"event": "tank_deleted", "tank_id": tank_id}))
