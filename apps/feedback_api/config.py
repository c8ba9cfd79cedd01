from __future__ import annotations

import os
import re
from dataclasses import dataclass, field

from dotenv import load_dotenv

_DOTENV_LOADED = False

_SIZE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(b|kb|mb|gb)?\s*$", re.IGNORECASE)
_SIZE_UNITS = {"b": 1, "kb": 1024, "mb": 1024**2, "gb": 1024**3}

DEFAULT_BODY_LIMIT_BYTES = 10 * 1024**2


def _load_env_once() -> None:
    global _DOTENV_LOADED
    if _DOTENV_LOADED:
        return
    load_dotenv()
    _DOTENV_LOADED = True


def _env_bool(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def parse_size(value: str | None, default: int = DEFAULT_BODY_LIMIT_BYTES) -> int:
    """Interpreta tamaños estilo "10mb", "512kb" o bytes a secas."""
    if not value:
        return default
    m = _SIZE_RE.match(value)
    if not m:
        return default
    number, unit = m.groups()
    return int(float(number) * _SIZE_UNITS[(unit or "b").lower()])


def parse_origins(value: str | None) -> list[str]:
    origins = [o.strip() for o in (value or "*").split(",") if o.strip()]
    return origins or ["*"]


@dataclass(slots=True, frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 8080
    environment: str = "development"
    api_version: str = "v1"
    log_level: str = "INFO"

    # Almacenamiento
    store_backend: str = "postgres"
    database_url: str | None = None
    database_name: str | None = None
    feedback_table: str = "feedback"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10
    store_timeout_s: float = 5.0

    # Middleware
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    body_limit_bytes: int = DEFAULT_BODY_LIMIT_BYTES
    enable_request_logging: bool = True
    enable_rate_limiting: bool = True
    rate_limit_window_ms: int = 900_000
    rate_limit_max_requests: int = 100

    # Política de validación
    tolerant_parsing: bool = True
    require_user_name: bool = False
    enforce_rating_range: bool = True

    shutdown_grace_s: float = 10.0

    @classmethod
    def from_env(cls) -> "Settings":
        _load_env_once()
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=_env_int("PORT", 8080),
            environment=os.getenv("APP_ENV", os.getenv("ENV", "development")),
            api_version=os.getenv("API_VERSION", "v1"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            store_backend=os.getenv("STORE_BACKEND", "postgres").lower(),
            database_url=os.getenv("DATABASE_URL") or None,
            database_name=os.getenv("DATABASE_NAME") or None,
            feedback_table=os.getenv("FEEDBACK_TABLE", "feedback"),
            db_pool_min_size=_env_int("DB_POOL_MIN_SIZE", 1),
            db_pool_max_size=_env_int("DB_POOL_MAX_SIZE", 10),
            store_timeout_s=_env_float("STORE_TIMEOUT_S", 5.0),
            cors_origins=parse_origins(os.getenv("CORS_ORIGIN")),
            body_limit_bytes=parse_size(os.getenv("BODY_LIMIT")),
            enable_request_logging=_env_bool("ENABLE_REQUEST_LOGGING", True),
            enable_rate_limiting=_env_bool("ENABLE_RATE_LIMITING", True),
            rate_limit_window_ms=_env_int("RATE_LIMIT_WINDOW_MS", 900_000),
            rate_limit_max_requests=_env_int("RATE_LIMIT_MAX_REQUESTS", 100),
            tolerant_parsing=_env_bool("TOLERANT_PARSING", True),
            require_user_name=_env_bool("REQUIRE_USER_NAME", False),
            enforce_rating_range=_env_bool("ENFORCE_RATING_RANGE", True),
            shutdown_grace_s=_env_float("SHUTDOWN_GRACE_S", 10.0),
        )

    @property
    def is_dev(self) -> bool:
        return self.environment.lower() in {"dev", "development", "local"}

    @property
    def rate_limit(self) -> str:
        # Formato de `limits`: "100 per 900 second"
        window_s = max(1, self.rate_limit_window_ms // 1000)
        return f"{self.rate_limit_max_requests} per {window_s} second"
