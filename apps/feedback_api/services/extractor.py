from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Sequence

# Alias aceptados por campo lógico, en orden de prioridad.
# Cubren el formato plano de la API y el que envía el conector de Copilot Studio.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "userMessage": ("userMessage", "text", "query", "message", "input"),
    "botResponse": ("botResponse", "lastBotResponse", "response", "answer", "output"),
    "feedback": ("feedback", "userFeedback", "comment", "text"),
    "rating": ("rating", "score", "stars", "value"),
    "userId": ("userId", "conversationId", "id", "user_id", "from.id"),
    "userName": ("userName", "user", "name", "from.name"),
}

DEFAULT_MAX_DEPTH = 64


def _is_match(value: Any) -> bool:
    if value is None or value == "":
        return False
    # Un objeto/lista bajo un alias no es un valor: se sigue buscando dentro.
    return not isinstance(value, (Mapping, list))


def _lookup_path(obj: Mapping[str, Any], path: str) -> Any:
    current: Any = obj
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return None
        current = current[part]
    return current


def find_value(obj: Any, keys: Sequence[str], *, max_depth: int = DEFAULT_MAX_DEPTH) -> Any:
    """Busca el primer valor no vacío para cualquiera de `keys`.

    Orden de búsqueda:
      1. todas las claves sobre el objeto actual, en el orden dado
         (una clave con "." se resuelve además como ruta: "from.id");
      2. después, recursivamente en cada valor que sea un objeto.

    Las listas no se recorren. Devuelve None si no hay coincidencia; nunca lanza.
    """
    if not isinstance(obj, Mapping) or max_depth < 0:
        return None

    for key in keys:
        value = obj.get(key)
        if _is_match(value):
            return value
        if "." in key:
            value = _lookup_path(obj, key)
            if _is_match(value):
                return value

    for value in obj.values():
        if isinstance(value, Mapping):
            found = find_value(value, keys, max_depth=max_depth - 1)
            if found is not None:
                return found

    return None


def extract_fields(
    payload: Any,
    aliases: Mapping[str, Sequence[str]] = FIELD_ALIASES,
) -> dict[str, Any]:
    return {field: find_value(payload, keys) for field, keys in aliases.items()}


def direct_fields(payload: Any, fields: Sequence[str] = tuple(FIELD_ALIASES)) -> dict[str, Any]:
    """Modo estricto: solo claves exactas en el nivel superior."""
    if not isinstance(payload, Mapping):
        return {field: None for field in fields}
    return {field: payload.get(field) for field in fields}
