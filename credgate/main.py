from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from credgate.api.core.exceptions.base import register_exception_handlers
from credgate.api.core.middleware.auth import auth_middleware
from credgate.api.core.middleware.logging import logging_middleware
from credgate.api.router import api_router
from credgate.core.background import BackgroundDispatcher
from credgate.database.connection import (
    create_engine_from_settings,
    create_session_factory,
)
from credgate.modules.audit.sink import AuditSink, DatabaseAuditSink
from credgate.modules.usage.meter import UsageMeter
from credgate.storage.base import Storage
from credgate.storage.sqlalchemy import SqlAlchemyStorage
from credgate.utils.clock import Clock, utc_now
from credgate.utils.logger import setup_logging
from credgate.utils.settings.app import AppSettings
from credgate.utils.settings.auth import AuthSettings
from credgate.utils.settings.usage import UsageSettings


def _install_state(
    app: FastAPI, storage: Storage, audit_sink: AuditSink | None
) -> None:
    state = app.state
    state.storage = storage
    state.audit_sink = audit_sink
    state.usage_meter = UsageMeter(
        storage,
        retry_queue_size=state.usage_settings.USAGE_RETRY_QUEUE_SIZE,
        clock=state.clock,
        dispatcher=state.dispatcher,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    app_settings: AppSettings = app.state.app_settings
    logger = setup_logging(app_settings.is_production, app_settings.LOG_LEVEL)
    logger.info("Starting CredGate API...")

    owns_storage = app.state.storage is None
    if owns_storage:
        session_factory = create_session_factory(create_engine_from_settings())
        _install_state(
            app,
            SqlAlchemyStorage(session_factory),
            app.state.audit_sink or DatabaseAuditSink(session_factory),
        )
        logger.info("Database storage configured")

    yield

    logger.info("Shutting down CredGate API...")
    await app.state.dispatcher.drain()
    await app.state.usage_meter.retry_failed()
    if owns_storage:
        await app.state.storage.close()


def create_app(
    storage: Storage | None = None,
    audit_sink: AuditSink | None = None,
    clock: Clock = utc_now,
    app_settings: AppSettings | None = None,
    auth_settings: AuthSettings | None = None,
) -> FastAPI:
    """Build the application.

    Without ``storage`` the lifespan connects to the configured database.
    """
    app_settings = app_settings or AppSettings()
    app_settings.validate_prod()
    auth_settings = auth_settings or AuthSettings()
    if app_settings.is_production:
        auth_settings.validate_prod()

    app = FastAPI(
        title="CredGate API",
        description="Client-scoped API keys, usage metering and operator permissions",
        version=app_settings.API_VERSION,
        lifespan=lifespan,
        docs_url=None if app_settings.is_production else "/docs",
        redoc_url=None if app_settings.is_production else "/redoc",
        openapi_url=None if app_settings.is_production else "/openapi.json",
    )

    app.state.app_settings = app_settings
    app.state.auth_settings = auth_settings
    app.state.usage_settings = UsageSettings()
    app.state.clock = clock
    app.state.dispatcher = BackgroundDispatcher()
    app.state.storage = None
    app.state.audit_sink = audit_sink
    if storage is not None:
        _install_state(app, storage, audit_sink)

    register_exception_handlers(app)

    app.middleware("http")(auth_middleware)
    app.middleware("http")(logging_middleware)
    # Outermost, so preflight requests are answered before authentication
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)
    return app


app = create_app()


def run_dev_server():
    """Run development server with auto-reload."""
    uvicorn.run(
        "credgate.main:app", host="0.0.0.0", port=8010, reload=True, access_log=False
    )


def run_prod_server():
    """Run production server."""
    uvicorn.run(
        "credgate.main:app", host="0.0.0.0", port=8010, reload=False, access_log=False
    )
