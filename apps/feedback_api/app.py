from __future__ import annotations

import asyncio
import contextlib
import platform

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from packages.shared.schemas.common import ErrorResponse
from packages.shared.schemas.feedback import FeedbackRejectedResponse, ParseErrorResponse

from apps.feedback_api.config import Settings
from apps.feedback_api.deps import build_store, setup_app
from apps.feedback_api.logger import configure_logging, get_logger
from apps.feedback_api.routers import feedback, health
from apps.feedback_api.services.errors import FeedbackValidationError, ParseError, StoreUnavailable
from apps.feedback_api.services.observability import shutdown_observability
from apps.feedback_api.services.ports import FeedbackStore

logger = get_logger(__name__)


def create_app(settings: Settings | None = None, store: FeedbackStore | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    if store is None:
        store = build_store(settings)

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "starting",
            environment=settings.environment,
            python=platform.python_version(),
            port=settings.port,
            store_backend=settings.store_backend,
        )

        # Conexión en segundo plano: GET / responde aunque la BD tarde o no esté.
        connect_task = asyncio.create_task(store.connect())

        yield

        logger.info("shutting_down", grace_s=settings.shutdown_grace_s)
        if not connect_task.done():
            connect_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await connect_task
        try:
            await asyncio.wait_for(store.close(), timeout=settings.shutdown_grace_s)
        except asyncio.TimeoutError:
            logger.warning("database_close_timeout", grace_s=settings.shutdown_grace_s)
        shutdown_observability()
        logger.info("shutdown_complete")

    app = FastAPI(title="Feedback API", version=settings.api_version, lifespan=lifespan)

    setup_app(app, settings=settings, store=store)

    @app.exception_handler(ParseError)
    async def _parse_error_handler(request: Request, exc: ParseError):
        # Se devuelve el cuerpo recibido para poder depurar el conector que lo envía.
        body = ParseErrorResponse(error=exc.reason, received_body=exc.raw_body)
        return JSONResponse(status_code=400, content=body.model_dump(by_alias=True))

    @app.exception_handler(FeedbackValidationError)
    async def _validation_error_handler(request: Request, exc: FeedbackValidationError):
        body = FeedbackRejectedResponse(message=exc.message, missing_fields=exc.missing_fields, errors=exc.errors)
        return JSONResponse(status_code=400, content=body.model_dump(by_alias=True))

    @app.exception_handler(StoreUnavailable)
    async def _store_unavailable_handler(request: Request, exc: StoreUnavailable):
        body = ErrorResponse(message="Database connection unavailable", error=str(exc))
        return JSONResponse(status_code=503, content=body.model_dump())

    # Los errores inesperados (500) los convierte UnhandledErrorMiddleware, dentro de CORS.

    app.include_router(health.router)
    app.include_router(feedback.router)

    return app
