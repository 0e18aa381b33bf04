from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from cellarwatch.services.observability import observability_tracker


class FermentationError(Exception):
    """Base class for domain errors raised by the fermentation services."""

    kind = "fermentation_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ValidationError(FermentationError):
    """Malformed or out-of-range input (non-positive volume, unknown enum value)."""

    kind = "validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class NotFoundError(FermentationError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(FermentationError):
    """The tank was not available when it was reserved."""

    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class IllegalStateError(FermentationError):
    """The operation is not valid for the current lifecycle state."""

    kind = "illegal_state"
    status_code = status.HTTP_409_CONFLICT


async def fermentation_error_handler(request: Request, exc: FermentationError) -> JSONResponse:
    observability_tracker.record_domain_error(exc.kind)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": exc.kind},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FermentationError, fermentation_error_handler)  # type: ignore[arg-type]
