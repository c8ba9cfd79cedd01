from __future__ import annotations

import asyncio
import contextlib
import json
import re
from typing import Any, Awaitable, Callable, TypeVar
from urllib.parse import urlsplit
from uuid import uuid4

import asyncpg

from apps.feedback_api.logger import get_logger
from apps.feedback_api.services.errors import StoreUnavailable
from apps.feedback_api.services.ports import FeedbackStore
from packages.shared.schemas.common import DatabaseStatus, utcnow
from packages.shared.schemas.feedback import FeedbackDraft, FeedbackRecord

logger = get_logger(__name__)

T = TypeVar("T")

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


async def _init_connection(conn: asyncpg.Connection) -> None:
    # asyncpg devuelve jsonb como str si no se registra el codec.
    await conn.set_type_codec("jsonb", encoder=json.dumps, decoder=json.loads, schema="pg_catalog")


def database_from_dsn(dsn: str | None) -> str | None:
    if not dsn:
        return None
    path = urlsplit(dsn).path.lstrip("/")
    return path or None


class PostgresFeedbackStore(FeedbackStore):
    """
    Store de documentos sobre Postgres (JSONB).
    - Una tabla append-only: id, user_id, created_at + documento completo
    - Índices por (user_id, created_at) y created_at
    - Todas las operaciones acotadas por timeout -> StoreUnavailable
    """

    def __init__(
        self,
        *,
        dsn: str | None,
        database: str | None = None,
        table: str = "feedback",
        min_size: int = 1,
        max_size: int = 10,
        timeout_s: float = 5.0,
        pool_factory: Callable[..., Awaitable[Any]] = asyncpg.create_pool,
    ) -> None:
        if not _IDENTIFIER_RE.match(table):
            raise ValueError(f"Invalid table name: {table!r}")

        self._dsn = dsn
        self._database = database
        self._table = table
        self._min_size = min_size
        self._max_size = max_size
        self._timeout_s = float(timeout_s)
        self._pool_factory = pool_factory

        self._pool: Any | None = None
        self._connected = False
        self._attempt: asyncio.Task | None = None

        self.name = database or database_from_dsn(dsn) or "unknown"

    def is_available(self) -> bool:
        return self._connected and self._pool is not None

    def status(self) -> DatabaseStatus:
        if not self._dsn:
            return DatabaseStatus.not_configured
        return DatabaseStatus.connected if self.is_available() else DatabaseStatus.disconnected

    def _schema_sql(self) -> str:
        t = self._table
        return f"""
        CREATE TABLE IF NOT EXISTS {t} (
          id uuid PRIMARY KEY,
          user_id text NOT NULL,
          created_at timestamptz NOT NULL,
          document jsonb NOT NULL
        );
        CREATE INDEX IF NOT EXISTS {t}_user_id_created_at_idx ON {t} (user_id, created_at DESC);
        CREATE INDEX IF NOT EXISTS {t}_created_at_idx ON {t} (created_at);
        """

    async def connect(self) -> None:
        if not self._dsn:
            logger.warning("database_not_configured", hint="set DATABASE_URL")
            return
        if self.is_available():
            return

        # Un único intento en curso: las peticiones concurrentes esperan el mismo
        # en lugar de encadenar uno tras otro.
        attempt = self._attempt
        if attempt is None or attempt.done():
            attempt = self._attempt = asyncio.create_task(self._connect_once())
        # shield: cancelar a un llamador no cancela el intento de los demás.
        await asyncio.shield(attempt)

    async def _connect_once(self) -> None:
        # Pool de una conexión anterior que se cayó: se descarta sin esperar.
        stale, self._pool = self._pool, None
        if stale is not None:
            stale.terminate()

        logger.info("database_connecting", database=self.name)
        kwargs: dict[str, Any] = {
            "dsn": self._dsn,
            "min_size": self._min_size,
            "max_size": self._max_size,
            "timeout": self._timeout_s,
            "command_timeout": self._timeout_s,
            "init": _init_connection,
        }
        if self._database:
            kwargs["database"] = self._database

        pool = None
        try:
            pool = await asyncio.wait_for(self._pool_factory(**kwargs), timeout=self._timeout_s * 2)
            async with pool.acquire() as conn:
                await asyncio.wait_for(conn.execute(self._schema_sql()), timeout=self._timeout_s)
        except asyncio.CancelledError:
            if pool is not None:
                pool.terminate()
            raise
        except Exception as e:
            # El proceso sigue vivo (health checks); se reintenta en la siguiente petición.
            logger.error("database_connection_failed", database=self.name, error=str(e), error_type=type(e).__name__)
            if pool is not None:
                await pool.close()
            self._connected = False
            return

        self._pool = pool
        self._connected = True
        logger.info("database_reconnected" if stale is not None else "database_connected", database=self.name)

    async def ensure_available(self) -> None:
        if self.is_available():
            return
        if not self._dsn:
            raise StoreUnavailable("Database connection string is not configured")

        await self.connect()
        if not self.is_available():
            raise StoreUnavailable("Database connection unavailable, please try again in a few moments")

    async def _run(self, op: Callable[[Any], Awaitable[T]]) -> T:
        pool = self._pool
        if pool is None or not self._connected:
            raise StoreUnavailable("Database connection unavailable")

        async def _acquire_and_run() -> T:
            async with pool.acquire() as conn:
                return await op(conn)

        try:
            return await asyncio.wait_for(_acquire_and_run(), timeout=self._timeout_s)
        except asyncio.TimeoutError as e:
            raise StoreUnavailable(f"Database operation timed out after {self._timeout_s:.1f}s") from e
        except (OSError, asyncpg.exceptions.InterfaceError, asyncpg.exceptions.PostgresConnectionError) as e:
            self._connected = False
            logger.warning("database_disconnected", database=self.name, error=str(e))
            raise StoreUnavailable(f"Database connection error: {e}") from e

    async def insert(self, draft: FeedbackDraft) -> FeedbackRecord:
        record = FeedbackRecord.from_draft(draft, record_id=uuid4(), created_at=utcnow())

        sql = f"""
        INSERT INTO {self._table} (id, user_id, created_at, document)
        VALUES ($1, $2, $3, $4::jsonb)
        """

        await self._run(
            lambda conn: conn.execute(sql, record.id, record.user_id, record.created_at, record.to_document())
        )
        return record

    async def list_all(self) -> list[FeedbackRecord]:
        sql = f"SELECT document FROM {self._table} ORDER BY created_at, id"
        rows = await self._run(lambda conn: conn.fetch(sql))

        out: list[FeedbackRecord] = []
        for r in rows:
            doc = r["document"]
            if isinstance(doc, str):
                doc = json.loads(doc)
            out.append(FeedbackRecord.model_validate(doc))
        return out

    async def close(self) -> None:
        attempt, self._attempt = self._attempt, None
        if attempt is not None and not attempt.done():
            attempt.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await attempt

        pool, self._pool = self._pool, None
        self._connected = False
        if pool is not None:
            await pool.close()
            logger.info("database_closed", database=self.name)
