from __future__ import annotations

import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from packages.shared.schemas.common import ErrorResponse

from apps.feedback_api.config import Settings
from apps.feedback_api.logger import get_logger

logger = get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Loguea inicio, fin (status + duración) y fallos de cada petición."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        client_host = request.client.host if request.client else "unknown"

        logger.info(
            "request_started",
            method=request.method,
            path=request.url.path,
            client_host=client_host,
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            raise

        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return response



class _BodyTooLarge(Exception):
    pass


class BodyLimitMiddleware:
    """Rechaza con 413 los cuerpos que superan el límite.

    Se comprueba el Content-Length declarado y, además, los bytes realmente
    recibidos (peticiones chunked sin Content-Length).
    """

    def __init__(self, app: ASGIApp, *, limit_bytes: int) -> None:
        self.app = app
        self._limit_bytes = limit_bytes

    def _too_large(self) -> JSONResponse:
        return JSONResponse(
            status_code=413,
            content={"message": "Request body too large", "limit": self._limit_bytes},
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        content_length = Headers(scope=scope).get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self._limit_bytes:
            logger.warning("request_body_too_large", path=path, content_length=int(content_length))
            await self._too_large()(scope, receive, send)
            return

        received = 0
        response_started = False

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self._limit_bytes:
                    raise _BodyTooLarge()
            return message

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, tracking_send)
        except _BodyTooLarge:
            if response_started:
                raise
            logger.warning("request_body_too_large", path=path, received_bytes=received)
            await self._too_large()(scope, receive, send)


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """Convierte errores inesperados en 500 JSON dentro de la capa CORS.

    Los handlers de Exception de Starlette responden desde fuera de todos los
    middlewares, y esa respuesta saldría sin cabeceras CORS.
    """

    def __init__(self, app, *, show_details: bool) -> None:
        super().__init__(app)
        self._show_details = show_details

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            logger.error("unhandled_error", method=request.method, path=request.url.path, exc_info=exc)
            error = str(exc) if self._show_details else "Internal server error"
            body = ErrorResponse(message="Internal server error", error=error)
            return JSONResponse(status_code=500, content=body.model_dump())


def build_limiter(settings: Settings) -> Limiter:
    return Limiter(
        key_func=get_remote_address,
        default_limits=[settings.rate_limit],
        enabled=settings.enable_rate_limiting,
        storage_uri="memory://",
    )


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    # Starlette: el último middleware añadido es el más externo.
    app.add_middleware(BodyLimitMiddleware, limit_bytes=settings.body_limit_bytes)

    app.state.limiter = build_limiter(settings)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    if settings.enable_request_logging:
        app.add_middleware(RequestLoggingMiddleware)

    # Dentro de CORS: los 500 también llevan Access-Control-Allow-Origin.
    app.add_middleware(UnhandledErrorMiddleware, show_details=settings.is_dev)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
