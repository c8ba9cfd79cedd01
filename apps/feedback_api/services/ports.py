from __future__ import annotations

from typing import Protocol

from packages.shared.schemas.common import DatabaseStatus
from packages.shared.schemas.feedback import FeedbackDraft, FeedbackRecord


class FeedbackStore(Protocol):
    name: str

    def is_available(self) -> bool:
        """Estado de la conexión, sin I/O."""
        ...

    def status(self) -> DatabaseStatus:
        ...

    async def connect(self) -> None:
        """Abre la conexión. No lanza: si falla, el store queda no disponible."""
        ...

    async def ensure_available(self) -> None:
        """Reintenta conectar si está caído. Lanza StoreUnavailable si sigue caído."""
        ...

    async def insert(self, draft: FeedbackDraft) -> FeedbackRecord:
        """Asigna id y createdAt, persiste y devuelve el registro guardado."""
        ...

    async def list_all(self) -> list[FeedbackRecord]:
        ...

    async def close(self) -> None:
        ...
