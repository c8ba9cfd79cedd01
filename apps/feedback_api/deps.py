from __future__ import annotations

from fastapi import FastAPI, Request

from apps.feedback_api.adapters.memory_feedback_store import InMemoryFeedbackStore
from apps.feedback_api.adapters.postgres_feedback_store import PostgresFeedbackStore
from apps.feedback_api.config import Settings
from apps.feedback_api.middleware import setup_middleware
from apps.feedback_api.services.feedback_service import FeedbackService
from apps.feedback_api.services.observability import setup_observability
from apps.feedback_api.services.ports import FeedbackStore
from apps.feedback_api.services.validator import FeedbackPolicy


def build_store(settings: Settings) -> FeedbackStore:
    # DEV: STORE_BACKEND=memory levanta la API sin base de datos.
    if settings.store_backend == "memory":
        return InMemoryFeedbackStore()

    return PostgresFeedbackStore(
        dsn=settings.database_url,
        database=settings.database_name,
        table=settings.feedback_table,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        timeout_s=settings.store_timeout_s,
    )


def setup_app(app: FastAPI, *, settings: Settings, store: FeedbackStore) -> None:
    # Observabilidad (OTLP si está configurado por env)
    setup_observability(environment=settings.environment, version=settings.api_version)

    setup_middleware(app, settings)

    app.state.settings = settings
    app.state.store = store
    # Un servicio por app: los instrumentos OTel no se recrean por petición.
    app.state.feedback_service = FeedbackService(
        store=store,
        policy=FeedbackPolicy(
            require_user_name=settings.require_user_name,
            enforce_rating_range=settings.enforce_rating_range,
        ),
        tolerant_parsing=settings.tolerant_parsing,
    )


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> FeedbackStore:
    return request.app.state.store


def get_feedback_service(request: Request) -> FeedbackService:
    return request.app.state.feedback_service
