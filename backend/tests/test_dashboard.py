import asyncio
import threading
from collections.abc import Callable

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from cellarwatch.api.dashboard import get_dashboard_transport
from cellarwatch.core.config import settings
from cellarwatch.models.tank import Tank
from cellarwatch.schemas.batch import BatchCreate
from cellarwatch.services import batch_lifecycle, dashboard
from cellarwatch.services.dashboard import build_dashboard_summary, count_local, fetch_remote_counts


@pytest.fixture
def remote_services(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "vineyard_service_url", "http://vineyard.test/api/v1/")
    monkeypatch.setattr(settings, "harvest_service_url", "http://harvest.test/api/v1")


def _transport(seen_headers: list[str | None] | None = None, *, harvest_status: int = 200) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen_headers is not None:
            seen_headers.append(request.headers.get("Authorization"))
        if request.url.path == "/api/v1/vineyards":
            return httpx.Response(200, json=[{"id": 1}, {"id": 2}])
        if request.url.path == "/api/v1/harvests":
            return httpx.Response(harvest_status, json=[{"id": 10}, {"id": 11}, {"id": 12}])
        return httpx.Response(404, json={"detail": "Not found"})

    return httpx.MockTransport(handler)


def test_remote_counts_forward_authorization(remote_services: None) -> None:
    seen: list[str | None] = []

    counts = asyncio.run(fetch_remote_counts("Bearer abc", transport=_transport(seen)))

    assert counts == {"vineyard": 2, "harvest": 3}
    assert seen == ["Bearer abc", "Bearer abc"]


def test_failed_source_is_reported_as_unavailable(remote_services: None, db: Session) -> None:
    summary = asyncio.run(
        build_dashboard_summary(db, authorization=None, transport=_transport(harvest_status=503))
    )

    assert summary.vineyard_count == 2
    assert summary.harvest_count is None
    assert summary.unavailable_sources == ["harvest"]
    assert summary.tank_count == 0


def test_unconfigured_sources_skip_network(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "vineyard_service_url", None)
    monkeypatch.setattr(settings, "harvest_service_url", None)

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError(f"unexpected request to {request.url}")

    counts = asyncio.run(fetch_remote_counts(None, transport=httpx.MockTransport(handler)))

    assert counts == {"vineyard": None, "harvest": None}


def test_dashboard_summary_endpoint(
    client: TestClient,
    remote_services: None,
    winemaker_headers: dict[str, str],
) -> None:
    client.app.dependency_overrides[get_dashboard_transport] = lambda: _transport()
    client.post(
        "/api/v1/tanks",
        json={"name": "Tank 1", "capacity_liters": 800, "material": "fiberglass"},
        headers=winemaker_headers,
    )

    response = client.get("/api/v1/dashboard/summary", headers=winemaker_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["vineyard_count"] == 2
    assert body["harvest_count"] == 3
    assert body["tank_count"] == 1
    assert body["available_tank_count"] == 1
    assert body["active_batch_count"] == 0
    assert body["unavailable_sources"] == []

    assert client.get("/api/v1/dashboard/summary").status_code == 401


def test_local_counts_run_off_the_event_loop(
    monkeypatch: pytest.MonkeyPatch,
    db: Session,
    make_tank: Callable[..., Tank],
) -> None:
    monkeypatch.setattr(settings, "vineyard_service_url", None)
    monkeypatch.setattr(settings, "harvest_service_url", None)
    busy = make_tank(name="Tank A")
    make_tank(name="Tank B")
    batch_lifecycle.create_batch(
        db,
        BatchCreate(tank_id=busy.id, name="Riesling 2026", grape_variety="Riesling", volume_liters=700),
        created_by="winemaker-1",
    )

    counting_threads: list[int] = []

    def recording_count_local(session: Session) -> dict[str, int]:
        counting_threads.append(threading.get_ident())
        return count_local(session)

    monkeypatch.setattr(dashboard, "count_local", recording_count_local)

    summary = asyncio.run(build_dashboard_summary(db, authorization=None))

    assert summary.tank_count == 2
    assert summary.available_tank_count == 1
    assert summary.batch_count == 1
    assert summary.active_batch_count == 1
    assert summary.unavailable_sources == ["harvest", "vineyard"]
    assert len(counting_threads) == 1
    assert counting_threads[0] != threading.get_ident()
