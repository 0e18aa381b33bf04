from fastapi import FastAPI

from cellarwatch import models  # noqa: F401
from cellarwatch.api.batches import router as batch_router
from cellarwatch.api.dashboard import router as dashboard_router
from cellarwatch.api.health import router as health_router
from cellarwatch.api.observability import router as observability_router
from cellarwatch.api.readings import iot_router
from cellarwatch.api.readings import router as reading_router
from cellarwatch.api.tanks import router as tank_router
from cellarwatch.core.config import settings
from cellarwatch.core.database import Base, engine
from cellarwatch.core.errors import register_error_handlers
from cellarwatch.core.logging_config import configure_logging
from cellarwatch.core.observability_middleware import ObservabilityMiddleware


def include_routers(app: FastAPI) -> None:
    app.include_router(health_router, prefix=settings.api_prefix)
    app.include_router(tank_router, prefix=settings.api_prefix)
    app.include_router(batch_router, prefix=settings.api_prefix)
    app.include_router(reading_router, prefix=settings.api_prefix)
    app.include_router(iot_router, prefix=settings.api_prefix)
    app.include_router(dashboard_router, prefix=settings.api_prefix)
    app.include_router(observability_router, prefix=settings.api_prefix)


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=settings.app_name)

    if settings.auto_create_tables:
        Base.metadata.create_all(bind=engine)

    app.add_middleware(ObservabilityMiddleware)
    register_error_handlers(app)
    include_routers(app)
    return app


app = create_app()
