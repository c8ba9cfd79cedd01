from __future__ import annotations

from fastapi import APIRouter, Depends

from packages.shared.schemas.common import DatabaseHealth, HealthResponse

from apps.feedback_api.config import Settings
from apps.feedback_api.deps import get_settings, get_store
from apps.feedback_api.services.ports import FeedbackStore

router = APIRouter(tags=["health"])


@router.get("/", response_model=HealthResponse)
async def health(
    settings: Settings = Depends(get_settings),
    store: FeedbackStore = Depends(get_store),
) -> HealthResponse:
    """Health check que no depende de la base de datos.

    Solo informa del estado de conexión conocido; no hace I/O.
    """
    return HealthResponse(
        version=settings.api_version,
        environment=settings.environment,
        database=DatabaseHealth(status=store.status(), name=store.name),
    )
