from __future__ import annotations

from uuid import uuid4

from apps.feedback_api.services.errors import StoreUnavailable
from apps.feedback_api.services.ports import FeedbackStore
from packages.shared.schemas.common import DatabaseStatus, utcnow
from packages.shared.schemas.feedback import FeedbackDraft, FeedbackRecord


class InMemoryFeedbackStore(FeedbackStore):
    """Store en memoria (DEV/tests).

    `available=False` simula una base de datos caída.
    """

    def __init__(self, *, name: str = "memory", available: bool = True) -> None:
        self.name = name
        self.available = available
        self._items: list[FeedbackRecord] = []

    def is_available(self) -> bool:
        return self.available

    def status(self) -> DatabaseStatus:
        return DatabaseStatus.connected if self.available else DatabaseStatus.disconnected

    async def connect(self) -> None:
        return None

    async def ensure_available(self) -> None:
        if not self.available:
            raise StoreUnavailable("Database connection unavailable, please try again in a few moments")

    async def insert(self, draft: FeedbackDraft) -> FeedbackRecord:
        await self.ensure_available()
        record = FeedbackRecord.from_draft(draft, record_id=uuid4(), created_at=utcnow())
        self._items.append(record)
        return record

    async def list_all(self) -> list[FeedbackRecord]:
        await self.ensure_available()
        return list(self._items)

    async def close(self) -> None:
        self.available = False
