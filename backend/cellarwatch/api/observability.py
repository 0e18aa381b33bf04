from fastapi import APIRouter, Depends

from cellarwatch.core.security import Principal, require_roles
from cellarwatch.models.enums import UserRole
from cellarwatch.schemas.observability import ObservabilityMetricsResponse
from cellarwatch.services.observability import observability_tracker

router = APIRouter(prefix="/observability", tags=["observability"])


@router.get("/metrics", response_model=ObservabilityMetricsResponse)
def get_metrics(principal: Principal = Depends(require_roles(UserRole.admin))) -> ObservabilityMetricsResponse:
    return ObservabilityMetricsResponse(**observability_tracker.snapshot())
