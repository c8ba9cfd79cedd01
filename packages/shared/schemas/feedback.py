from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import ConfigDict, Field

from .common import CamelModel

ANONYMOUS_USER_NAME = "anonymous"


class FeedbackDraft(CamelModel):
    """Feedback ya validado, pendiente de persistir (sin id ni createdAt)."""

    model_config = ConfigDict(frozen=True)

    user_message: str
    bot_response: str
    feedback: str
    rating: int
    user_id: str
    user_name: str = ANONYMOUS_USER_NAME


class FeedbackRecord(FeedbackDraft):
    id: UUID
    created_at: datetime

    @classmethod
    def from_draft(cls, draft: FeedbackDraft, *, record_id: UUID, created_at: datetime) -> "FeedbackRecord":
        return cls(**draft.model_dump(), id=record_id, created_at=created_at)

    def to_document(self) -> dict[str, Any]:
        # Documento tal y como se guarda en la columna JSONB.
        return self.model_dump(mode="json", by_alias=True)


class FeedbackCreatedResponse(CamelModel):
    message: str = "Feedback saved successfully"
    data: FeedbackRecord


class FeedbackRejectedResponse(CamelModel):
    message: str
    missing_fields: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class ParseErrorResponse(CamelModel):
    message: str = "Parse error"
    error: str
    received_body: str
