import asyncio
import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from aggcache.api import aggregations, backfill, flags, system
from aggcache.api.aggregation_utils import DEFAULT_REGISTRATIONS
from aggcache.core.config import AggregationSettings
from aggcache.core.container import ServiceContainer, build_container
from aggcache.core.errors import (
    AggregationValidationError,
    BackfillDisabledError,
    FallbackUnavailableError,
    UnregisteredAggregationError,
)
from aggcache.core.logging_setup import configure_logging
from aggcache.database import create_engine_for, create_session_factory
from aggcache.services.maintenance import aggregation_sweeper_process
from aggcache.services.record_source import SqlRecordSource
from aggcache.services.sql_storage import SqlStorageAdapter

logger = logging.getLogger(__name__)

_ERROR_STATUS = {
    UnregisteredAggregationError: status.HTTP_404_NOT_FOUND,
    AggregationValidationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    FallbackUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
    BackfillDisabledError: status.HTTP_409_CONFLICT,
}


def _register_error_handlers(app: FastAPI) -> None:
    for error_type, status_code in _ERROR_STATUS.items():

        async def handler(request: Request, exc: Exception, status_code=status_code):
            if status_code >= 500:
                logger.error("%s %s failed: %s", request.method, request.url.path, exc)
            return JSONResponse(status_code=status_code, content={"detail": str(exc)})

        app.add_exception_handler(error_type, handler)


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    """
    Build the API. Without a container one is wired up at startup from the
    environment: SQL durable tier, watch-event record source and the
    built-in aggregations.
    """
    settings = container.settings if container else AggregationSettings.from_env()

    app = FastAPI(
        title="Aggregation Cache API",
        description="""
        Precomputed analytics aggregations per user and filter set.
        Serves cached results with TTL expiry and falls back to direct
        computation when the cache path is disabled or failing.
        """,
        version="1.0.0",
        license_info={
            "name": "MIT",
        },
    )
    app.state.container = container
    app.state.engine = None
    app.state.sweeper = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url, "http://127.0.0.1:5173", "http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["Content-Type", "X-User-Id"],
    )

    _register_error_handlers(app)

    @app.on_event("startup")
    async def on_startup():
        configure_logging(settings.log_level)

        if app.state.container is None:
            engine = create_engine_for(settings.database_url)
            session_factory = create_session_factory(engine)
            app.state.engine = engine
            app.state.container = build_container(
                settings,
                storage_adapter=SqlStorageAdapter(session_factory),
                record_source=SqlRecordSource(session_factory),
                registrations=DEFAULT_REGISTRATIONS,
            )

        if settings.sweep_interval_seconds > 0:
            app.state.sweeper = asyncio.create_task(
                aggregation_sweeper_process(
                    app.state.container.service, settings.sweep_interval_seconds
                )
            )
        logger.info(
            "Aggregation cache ready: types=%s",
            app.state.container.data_processor.list(),
        )

    @app.on_event("shutdown")
    async def on_shutdown():
        if app.state.sweeper is not None:
            app.state.sweeper.cancel()
        if app.state.engine is not None:
            await app.state.engine.dispose()

    app.include_router(system.router, prefix="/api", tags=["System"])
    app.include_router(aggregations.router, prefix="/api/aggregations", tags=["Aggregations"])
    app.include_router(flags.router, prefix="/api/flags", tags=["Feature Flags"])
    app.include_router(backfill.router, prefix="/api/backfill", tags=["Backfill"])

    @app.get("/")
    async def root():
        return {"message": "Aggregation cache API is running"}

    return app
