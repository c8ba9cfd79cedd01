from __future__ import annotations

import json
from typing import Any

from .errors import ParseError

_BOM = "\ufeff"
# Copilot Studio antepone "=" al JSON cuando se usa una plantilla de fórmula.
_SIGIL_PREFIX = "={"


def normalize_body(raw: bytes | str) -> Any:
    """Parsea un cuerpo JSON tolerando BOM, espacios y el prefijo "=".

    Lanza ParseError con el cuerpo original si no se puede interpretar.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            text = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(bytes(raw).decode("utf-8", errors="replace"), str(e)) from e
    else:
        text = raw

    clean = text.strip().removeprefix(_BOM).strip()
    if clean.startswith(_SIGIL_PREFIX):
        clean = clean[1:]

    try:
        return json.loads(clean)
    except (ValueError, RecursionError) as e:
        # JSONDecodeError es un ValueError; también lo son los enteros de más de 4300 dígitos.
        raise ParseError(text, str(e)) from e
