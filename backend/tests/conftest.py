from collections.abc import Callable, Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from cellarwatch import models  # noqa: F401
from cellarwatch.core.database import Base, get_db
from cellarwatch.core.errors import register_error_handlers
from cellarwatch.core.observability_middleware import ObservabilityMiddleware
from cellarwatch.core.security import create_access_token
from cellarwatch.main import include_routers
from cellarwatch.models.batch import FermentationBatch
from cellarwatch.models.enums import TERMINAL_BATCH_STATUSES, TankMaterial, TankStatus, UserRole
from cellarwatch.models.tank import Tank
from cellarwatch.schemas.tank import TankCreate
from cellarwatch.services.observability import observability_tracker
from cellarwatch.services.tank_registry import register_tank


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_tank(db: Session) -> Callable[..., Tank]:
    def factory(
        name: str = "Tank A",
        capacity_liters: float = 1000.0,
        material: TankMaterial = TankMaterial.stainless_steel,
    ) -> Tank:
        return register_tank(
            db,
            TankCreate(name=name, capacity_liters=capacity_liters, material=material),
        )

    return factory


@pytest.fixture
def check_tank_invariant(db: Session) -> Callable[[], None]:
    """A tank is in use iff exactly one non-terminal batch occupies it."""

    def check() -> None:
        db.expire_all()
        for tank in db.query(Tank).all():
            live_batches = [
                batch
                for batch in db.query(FermentationBatch).filter(FermentationBatch.tank_id == tank.id).all()
                if batch.status not in TERMINAL_BATCH_STATUSES
            ]
            if tank.status == TankStatus.in_use:
                assert len(live_batches) == 1
                assert tank.current_batch_id == live_batches[0].id
            else:
                assert live_batches == []
                assert tank.current_batch_id is None

    return check


@pytest.fixture
def client(session_factory: sessionmaker[Session]) -> Generator[TestClient, None, None]:
    observability_tracker.reset()

    app = FastAPI(title="CellarWatch Fermentation API - Test")
    app.add_middleware(ObservabilityMiddleware)
    register_error_handlers(app)
    include_routers(app)

    def override_get_db() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    observability_tracker.reset()


def _headers_for(role: UserRole, subject: str) -> dict[str, str]:
    token = create_access_token(subject=subject, role=role, email=f"{subject}@winery.test")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def winemaker_headers() -> dict[str, str]:
    return _headers_for(UserRole.winemaker, "winemaker-1")


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return _headers_for(UserRole.admin, "admin-1")


@pytest.fixture
def worker_headers() -> dict[str, str]:
    return _headers_for(UserRole.worker, "worker-1")


@pytest.fixture
def other_winemaker_headers() -> dict[str, str]:
    return _headers_for(UserRole.winemaker, "winemaker-2")
