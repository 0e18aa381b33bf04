from collections.abc import Callable

import pytest
from sqlalchemy.orm import Session

from cellarwatch.core.errors import ConflictError, IllegalStateError, NotFoundError, ValidationError
from cellarwatch.models.enums import TankMaterial, TankStatus
from cellarwatch.models.tank import Tank
from cellarwatch.schemas.tank import TankCreate, TankUpdate
from cellarwatch.services import tank_registry


def test_register_rejects_non_positive_capacity(db: Session) -> None:
    payload = TankCreate.model_construct(name="Broken", capacity_liters=0, material=TankMaterial.oak)

    with pytest.raises(ValidationError):
        tank_registry.register_tank(db, payload)

    assert db.query(Tank).count() == 0


def test_register_rejects_unknown_material(db: Session) -> None:
    payload = TankCreate.model_construct(name="Clay pot", capacity_liters=500, material="clay")

    with pytest.raises(ValidationError):
        tank_registry.register_tank(db, payload)


def test_register_starts_available(make_tank: Callable[..., Tank]) -> None:
    tank = make_tank(name="Oak 1", material=TankMaterial.oak)

    assert tank.status == TankStatus.available
    assert tank.material == TankMaterial.oak
    assert tank.current_batch_id is None


def test_list_available_is_ordered_by_name(db: Session, make_tank: Callable[..., Tank]) -> None:
    zulu = make_tank(name="Zulu")
    alpha = make_tank(name="Alpha")
    busy = make_tank(name="Busy")
    tank_registry.reserve_tank(db, busy.id, batch_id=99)
    db.commit()

    available = tank_registry.list_available_tanks(db)

    assert [tank.id for tank in available] == [alpha.id, zulu.id]
    assert [tank.name for tank in tank_registry.list_tanks(db)] == ["Alpha", "Busy", "Zulu"]


def test_reserve_then_reserve_again_conflicts(db: Session, make_tank: Callable[..., Tank]) -> None:
    tank = make_tank()

    tank_registry.reserve_tank(db, tank.id, batch_id=1)
    db.commit()
    db.refresh(tank)
    assert tank.status == TankStatus.in_use
    assert tank.current_batch_id == 1

    with pytest.raises(ConflictError):
        tank_registry.reserve_tank(db, tank.id, batch_id=2)


def test_reserve_unknown_tank(db: Session) -> None:
    with pytest.raises(NotFoundError):
        tank_registry.reserve_tank(db, 404, batch_id=1)


def test_release_returns_tank_to_requested_status(db: Session, make_tank: Callable[..., Tank]) -> None:
    tank = make_tank()
    tank_registry.reserve_tank(db, tank.id, batch_id=7)
    db.commit()

    tank_registry.release_tank(db, tank.id, batch_id=7, next_status=TankStatus.cleaning)
    db.commit()
    db.refresh(tank)

    assert tank.status == TankStatus.cleaning
    assert tank.current_batch_id is None


def test_release_errors(db: Session, make_tank: Callable[..., Tank]) -> None:
    tank = make_tank()

    with pytest.raises(NotFoundError):
        tank_registry.release_tank(db, 404)

    with pytest.raises(IllegalStateError):
        tank_registry.release_tank(db, tank.id)

    tank_registry.reserve_tank(db, tank.id, batch_id=3)
    db.commit()
    with pytest.raises(IllegalStateError):
        tank_registry.release_tank(db, tank.id, batch_id=4)
    with pytest.raises(ValidationError):
        tank_registry.release_tank(db, tank.id, next_status=TankStatus.in_use)


def test_update_tank_status_rules(db: Session, make_tank: Callable[..., Tank]) -> None:
    tank = make_tank()

    updated = tank_registry.update_tank(db, tank.id, TankUpdate(status=TankStatus.maintenance, location="Cellar 2"))
    assert updated.status == TankStatus.maintenance
    assert updated.location == "Cellar 2"

    with pytest.raises(ValidationError):
        tank_registry.update_tank(db, tank.id, TankUpdate(status=TankStatus.in_use))

    tank_registry.update_tank(db, tank.id, TankUpdate(status=TankStatus.available))
    tank_registry.reserve_tank(db, tank.id, batch_id=5)
    db.commit()

    with pytest.raises(IllegalStateError):
        tank_registry.update_tank(db, tank.id, TankUpdate(status=TankStatus.cleaning))


def test_delete_tank_in_use_conflicts(db: Session, make_tank: Callable[..., Tank]) -> None:
    tank = make_tank()
    tank_registry.reserve_tank(db, tank.id, batch_id=1)
    db.commit()

    with pytest.raises(ConflictError):
        tank_registry.delete_tank(db, tank.id)

    idle = make_tank(name="Idle")
    tank_registry.delete_tank(db, idle.id)
    assert db.get(Tank, idle.id) is None
