"""FastAPI application setup."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from unireg import __version__
from unireg.api.dependencies import (
    close_outbox,
    close_state_store,
    close_workflow,
    init_event_manager,
    init_outbox,
    init_state_store,
    init_workflow,
)
from unireg.api.errors import ActionFailedError
from unireg.api.models import APIResponse
from unireg.api.routes import cards, course_uploads, events, outbox, registrations, semesters
from unireg.config import Settings
from unireg.notifier import Outbox, OutboxWorker, create_mailer
from unireg.state_store import StateStoreError
from unireg.workflow import RegistrationWorkflow

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = app.state.settings

    # Startup
    store = init_state_store(settings.db_path)
    event_manager = init_event_manager()

    mailer = create_mailer(settings)
    mail_outbox = Outbox(store, mailer, max_attempts=settings.outbox_max_attempts)
    init_outbox(mail_outbox)

    workflow = RegistrationWorkflow(
        state_store=store,
        outbox=mail_outbox,
        event_manager=event_manager,
        max_credit_hours=settings.max_credit_hours,
        app_url=settings.app_url,
    )
    init_workflow(workflow)

    worker: OutboxWorker | None = None
    if settings.outbox_poll_seconds > 0:
        worker = OutboxWorker(mail_outbox, interval=settings.outbox_poll_seconds)
        worker.start()

    logger.info(
        "UniReg API started (db=%s, mail=%s)", settings.db_path, settings.mail_transport
    )
    yield
    # Shutdown
    if worker is not None:
        worker.stop()
    close_workflow()
    close_outbox()
    close_state_store()


def _error_response(status_code: int, error: str, message: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=APIResponse[None](
            success=False, message=message or error, data=None, error=error
        ).model_dump(),
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Service settings. Defaults to ``Settings.from_env()``.
    """
    app = FastAPI(
        title="UniReg API",
        description="REST API for UniReg - Semester Registration Workflow",
        version=__version__,
        lifespan=lifespan,
    )

    # Store config for lifespan manager
    app.state.settings = settings if settings is not None else Settings.from_env()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(ActionFailedError)
    async def action_failed_handler(_request: Request, exc: ActionFailedError) -> JSONResponse:
        return _error_response(exc.status_code, exc.error.value, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(p) for p in first.get("loc", ()))
        return _error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "INVALID_ARGUMENT",
            f"Invalid {location}: {first.get('msg', 'invalid value')}",
        )

    @app.exception_handler(StateStoreError)
    async def state_store_error_handler(_request: Request, exc: StateStoreError) -> JSONResponse:
        logger.error("Unhandled state store error: %s", exc)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL", "Internal server error"
        )

    # Include routers
    app.include_router(registrations.router, prefix="/api/v1")
    app.include_router(course_uploads.router, prefix="/api/v1")
    app.include_router(cards.router, prefix="/api/v1")
    app.include_router(semesters.router, prefix="/api/v1")
    app.include_router(outbox.router, prefix="/api/v1")
    app.include_router(events.router, prefix="/api/v1")

    return app
