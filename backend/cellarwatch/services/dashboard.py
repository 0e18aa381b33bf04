from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime

import httpx
from sqlalchemy import func
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from cellarwatch.core.config import settings
from cellarwatch.models.batch import FermentationBatch
from cellarwatch.models.enums import BatchStatus, TankStatus
from cellarwatch.models.tank import Tank
from cellarwatch.schemas.dashboard import DashboardSummaryRead

logger = logging.getLogger("cellarwatch.dashboard")


class RemoteCountError(RuntimeError):
    """Raised when a sibling service cannot be counted."""


async def _fetch_count(client: httpx.AsyncClient, base_url: str, path: str, headers: dict[str, str]) -> int:
    url = f"{base_url.rstrip('/')}{path}"
    try:
        response = await client.get(url, headers=headers)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise RemoteCountError(f"Request to {url} failed: {exc}") from exc

    try:
        body = response.json()
    except ValueError as exc:
        raise RemoteCountError(f"Response from {url} was not valid JSON") from exc

    if not isinstance(body, list):
        raise RemoteCountError(f"Response from {url} was not a list")
    return len(body)


async def fetch_remote_counts(
    authorization: str | None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, int | None]:
    """Count vineyards and harvests in parallel; a failed or unconfigured source counts as None."""
    sources = {
        "vineyard": (settings.vineyard_service_url, "/vineyards"),
        "harvest": (settings.harvest_service_url, "/harvests"),
    }
    headers = {"Authorization": authorization} if authorization else {}

    configured = {name: target for name, target in sources.items() if target[0]}
    counts: dict[str, int | None] = {name: None for name in sources}
    if not configured:
        return counts

    async with httpx.AsyncClient(timeout=settings.dashboard_timeout_seconds, transport=transport) as client:
        results = await asyncio.gather(
            *(_fetch_count(client, base_url, path, headers) for base_url, path in configured.values()),
            return_exceptions=True,
        )

    for name, result in zip(configured, results):
        if isinstance(result, RemoteCountError):
            logger.warning(json.dumps({"event": "dashboard_source_unavailable", "source": name, "error": str(result)}))
            continue
        if isinstance(result, BaseException):
            raise result
        counts[name] = result
    return counts


def count_local(db: Session) -> dict[str, int]:
    return {
        "tank_count": db.query(func.count(Tank.id)).scalar() or 0,
        "available_tank_count": (
            db.query(func.count(Tank.id)).filter(Tank.status == TankStatus.available.value).scalar() or 0
        ),
        "batch_count": db.query(func.count(FermentationBatch.id)).scalar() or 0,
        "active_batch_count": (
            db.query(func.count(FermentationBatch.id))
            .filter(FermentationBatch.status == BatchStatus.active.value)
            .scalar()
            or 0
        ),
    }


async def build_dashboard_summary(
    db: Session,
    *,
    authorization: str | None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> DashboardSummaryRead:
    remote = await fetch_remote_counts(authorization, transport=transport)
    # Session queries are blocking; keep them off the event loop.
    local = await run_in_threadpool(count_local, db)
    return DashboardSummaryRead(
        generated_at=datetime.utcnow(),
        vineyard_count=remote["vineyard"],
        harvest_count=remote["harvest"],
        unavailable_sources=sorted(name for name, count in remote.items() if count is None),
        **local,
    )
