import httpx
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from cellarwatch.core.database import get_db
from cellarwatch.core.security import Principal, get_current_principal
from cellarwatch.schemas.dashboard import DashboardSummaryRead
from cellarwatch.services.dashboard import build_dashboard_summary

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def get_dashboard_transport() -> httpx.AsyncBaseTransport | None:
    return None


@router.get("/summary", response_model=DashboardSummaryRead)
async def get_dashboard_summary(
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    transport: httpx.AsyncBaseTransport | None = Depends(get_dashboard_transport),
) -> DashboardSummaryRead:
    return await build_dashboard_summary(
        db,
        authorization=request.headers.get("Authorization"),
        transport=transport,
    )
