from __future__ import annotations

import os

import uvicorn

from apps.feedback_api.config import Settings


def main() -> None:
    settings = Settings.from_env()
    uvicorn.run(
        "apps.feedback_api.asgi:app",
        host=settings.host,
        port=settings.port,
        reload=os.getenv("RELOAD", "false").lower() in {"1", "true", "yes"},
        # SIGTERM: uvicorn deja de aceptar peticiones y ejecuta el lifespan (cierra la BD).
        timeout_graceful_shutdown=int(settings.shutdown_grace_s),
        # El logging lo configura create_app() (structlog).
        log_config=None,
    )


if __name__ == "__main__":
    main()
