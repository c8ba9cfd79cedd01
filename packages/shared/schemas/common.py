from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base de los modelos expuestos por HTTP (claves camelCase en JSON)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DatabaseStatus(str, Enum):
    connected = "connected"
    disconnected = "disconnected"
    not_configured = "not_configured"


class DatabaseHealth(BaseModel):
    status: DatabaseStatus
    name: str


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    timestamp: datetime = Field(default_factory=utcnow)
    environment: str
    database: DatabaseHealth


class ErrorResponse(BaseModel):
    message: str
    error: str | None = None
