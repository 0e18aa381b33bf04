from __future__ import annotations

import json
import logging
from time import perf_counter
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from cellarwatch.services.observability import observability_tracker

logger = logging.getLogger("cellarwatch.request")


def _route_path(request: Request) -> str:
    # Route template once routing has matched, so per-id URLs share one entry.
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


def _request_payload(request: Request, *, event: str, status_code: int, duration_ms: float) -> str:
    principal = getattr(request.state, "principal", None)
    return json.dumps(
        {
            "event": event,
            "request_id": request.state.request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "duration_ms": round(duration_ms, 2),
            "subject": principal.subject if principal else None,
            "role": principal.role.value if principal else None,
        }
    )


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        request.state.request_id = request_id
        started = perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (perf_counter() - started) * 1000
            observability_tracker.record(
                method=request.method,
                path=_route_path(request),
                status_code=500,
                duration_ms=duration_ms,
            )
            logger.exception(_request_payload(request, event="request_error", status_code=500, duration_ms=duration_ms))
            response = JSONResponse(
                status_code=500,
                content={"detail": "Internal server error", "request_id": request_id},
            )
        else:
            duration_ms = (perf_counter() - started) * 1000
            observability_tracker.record(
                method=request.method,
                path=_route_path(request),
                status_code=response.status_code,
                duration_ms=duration_ms,
            )
            payload = _request_payload(
                request,
                event="request_completed",
                status_code=response.status_code,
                duration_ms=duration_ms,
            )
            if response.status_code >= 500:
                logger.error(payload)
            elif response.status_code >= 400:
                logger.warning(payload)
            else:
                logger.info(payload)

        response.headers["X-Request-ID"] = request_id
        return response
