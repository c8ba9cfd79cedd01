from __future__ import annotations

from typing import Any, Mapping, Sequence

from apps.feedback_api.logger import get_logger
from packages.shared.schemas.feedback import FeedbackRecord

from .body_normalizer import normalize_body
from .errors import FeedbackValidationError, ParseError
from .extractor import FIELD_ALIASES, direct_fields, extract_fields
from .observability import get_meter, get_tracer
from .ports import FeedbackStore
from .validator import FeedbackPolicy, validate_feedback

logger = get_logger(__name__)


class FeedbackService:
    def __init__(
        self,
        *,
        store: FeedbackStore,
        policy: FeedbackPolicy = FeedbackPolicy(),
        tolerant_parsing: bool = True,
        aliases: Mapping[str, Sequence[str]] = FIELD_ALIASES,
    ) -> None:
        self._store = store
        self._policy = policy
        self._tolerant_parsing = tolerant_parsing
        self._aliases = aliases

        # Observabilidad
        self._tracer = get_tracer("apps.feedback_api.feedback")
        self._meter = get_meter("apps.feedback_api.feedback")

        self._submissions = self._meter.create_counter(
            "feedback_submissions_total",
            description="Feedback guardado correctamente",
        )
        self._rejections = self._meter.create_counter(
            "feedback_rejections_total",
            description="Feedback rechazado (parse/validación)",
        )

    def extract(self, payload: Any) -> dict[str, Any]:
        if self._tolerant_parsing:
            return extract_fields(payload, self._aliases)
        return direct_fields(payload, tuple(self._aliases))

    async def submit(self, raw_body: bytes | str) -> FeedbackRecord:
        """normalize -> store disponible -> extract -> validate -> insert."""
        with self._tracer.start_as_current_span(
            "feedback.submit", attributes={"feedback.tolerant": self._tolerant_parsing}
        ) as span:
            try:
                payload = normalize_body(raw_body)
            except ParseError as e:
                self._rejections.add(1, attributes={"reason": "parse"})
                logger.warning("feedback_parse_failed", error=e.reason)
                raise

            # Sin BD no se valida nada: el 503 tiene prioridad sobre el 400 de validación.
            await self._store.ensure_available()

            fields = self.extract(payload)
            logger.debug("feedback_fields_extracted", fields=fields)

            try:
                draft = validate_feedback(fields, self._policy)
            except FeedbackValidationError as e:
                self._rejections.add(1, attributes={"reason": "validation"})
                span.set_attribute("feedback.missing_fields", e.missing_fields)
                logger.warning("feedback_validation_failed", missing_fields=e.missing_fields, errors=e.errors)
                raise

            record = await self._store.insert(draft)
            self._submissions.add(1, attributes={"rating": record.rating})
            span.set_attribute("feedback.id", str(record.id))
            logger.debug("feedback_saved", id=str(record.id), user_id=record.user_id)
            return record

    async def list_all(self) -> list[FeedbackRecord]:
        with self._tracer.start_as_current_span("feedback.list") as span:
            await self._store.ensure_available()
            records = await self._store.list_all()
            span.set_attribute("feedback.count", len(records))
            return records
