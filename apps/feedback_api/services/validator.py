from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from packages.shared.schemas.feedback import ANONYMOUS_USER_NAME, FeedbackDraft

from .errors import FeedbackValidationError

# Orden en el que se informan los campos que faltan.
REQUIRED_FIELDS: tuple[str, ...] = ("userMessage", "botResponse", "feedback", "rating", "userId")

_TEXT_FIELDS = {
    "userMessage": "user_message",
    "botResponse": "bot_response",
    "feedback": "feedback",
    "userId": "user_id",
    "userName": "user_name",
}


@dataclass(slots=True, frozen=True)
class FeedbackPolicy:
    require_user_name: bool = False
    enforce_rating_range: bool = True
    min_rating: int = 1
    max_rating: int = 5

    @property
    def required_fields(self) -> tuple[str, ...]:
        if self.require_user_name:
            return REQUIRED_FIELDS + ("userName",)
        return REQUIRED_FIELDS


def _clean_text(value: Any) -> str | None:
    # Objetos/listas (solo posibles en modo estricto) no son texto válido.
    if value is None or isinstance(value, (Mapping, list)):
        return None
    if isinstance(value, bool):
        value = str(value).lower()
    text = str(value).strip()
    return text or None


def coerce_rating(value: Any) -> int:
    """Convierte rating a int.

    Acepta int, float entero y strings numéricos ("5", " 4.0 ").
    Lanza ValueError para cualquier otra cosa.
    """
    if isinstance(value, bool):
        raise ValueError("Rating must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValueError("Rating must be an integer")
    if isinstance(value, str):
        s = value.strip()
        try:
            return int(s)
        except ValueError:
            pass
        try:
            f = float(s)
        except ValueError:
            raise ValueError("Rating must be an integer") from None
        if f.is_integer():
            return int(f)
    raise ValueError("Rating must be an integer")


def validate_feedback(fields: Mapping[str, Any], policy: FeedbackPolicy = FeedbackPolicy()) -> FeedbackDraft:
    """Valida los campos ya extraídos y devuelve un FeedbackDraft.

    Lanza FeedbackValidationError con todos los campos ausentes y errores.
    """
    cleaned: dict[str, Any] = {}
    missing: list[str] = []
    errors: list[str] = []

    for field, attr in _TEXT_FIELDS.items():
        cleaned[attr] = _clean_text(fields.get(field))

    raw_rating = fields.get("rating")
    if isinstance(raw_rating, str):
        raw_rating = raw_rating.strip() or None

    for field in policy.required_fields:
        if field == "rating":
            if raw_rating is None:
                missing.append(field)
        elif cleaned[_TEXT_FIELDS[field]] is None:
            missing.append(field)

    rating: int | None = None
    if raw_rating is not None:
        try:
            rating = coerce_rating(raw_rating)
        except ValueError as e:
            errors.append(str(e))
        else:
            if policy.enforce_rating_range and not (policy.min_rating <= rating <= policy.max_rating):
                errors.append(f"Rating must be between {policy.min_rating} and {policy.max_rating}")

    if missing or errors:
        raise FeedbackValidationError(missing_fields=missing, errors=errors)

    if cleaned["user_name"] is None:
        cleaned["user_name"] = ANONYMOUS_USER_NAME

    return FeedbackDraft(rating=rating, **cleaned)
