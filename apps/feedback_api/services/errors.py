from __future__ import annotations

from typing import Sequence


class ParseError(ValueError):
    """El cuerpo de la petición no es JSON (ni siquiera en formato tolerante)."""

    def __init__(self, raw_body: str, reason: str) -> None:
        super().__init__(f"Invalid request body: {reason}")
        self.raw_body = raw_body
        self.reason = reason


class FeedbackValidationError(ValueError):
    """Faltan campos obligatorios o alguno es inválido.

    Se informan TODOS los problemas a la vez (no fail-fast).
    """

    def __init__(self, *, missing_fields: Sequence[str] = (), errors: Sequence[str] = ()) -> None:
        self.missing_fields = list(missing_fields)
        self.errors = list(errors)
        super().__init__(self.message)

    @property
    def message(self) -> str:
        if self.missing_fields:
            return "Missing required fields"
        return "Validation failed"


class StoreUnavailable(RuntimeError):
    """La base de datos no está conectada o no respondió a tiempo."""
