from __future__ import annotations

import asyncio
import os
from typing import NoReturn

import asyncpg
from dotenv import load_dotenv

from apps.feedback_api.adapters.postgres_feedback_store import PostgresFeedbackStore


async def main() -> NoReturn:
    load_dotenv()
    dsn = os.getenv("DATABASE_URL")
    if not dsn:
        raise SystemExit("DATABASE_URL no está configurada (ni en entorno ni en .env)")

    table = os.getenv("FEEDBACK_TABLE", "feedback")

    # 1) conexión + creación idempotente de tabla/índices (mismo camino que la API)
    store = PostgresFeedbackStore(dsn=dsn, database=os.getenv("DATABASE_NAME") or None, table=table)
    await store.connect()
    if not store.is_available():
        raise SystemExit(f"No se pudo conectar a la base de datos '{store.name}'")
    await store.close()

    conn = await asyncpg.connect(dsn)
    try:
        # 2) tabla
        exists = await conn.fetchval(
            "SELECT EXISTS (SELECT 1 FROM pg_tables WHERE schemaname = 'public' AND tablename = $1)",
            table,
        )
        print(f"tabla {table}: {bool(exists)}")
        if not exists:
            raise SystemExit(f"Falta tabla requerida: {table}")

        # 3) índices por usuario y fecha
        indexes = await conn.fetch("SELECT indexname FROM pg_indexes WHERE tablename = $1 ORDER BY indexname", table)
        index_names = [r["indexname"] for r in indexes]
        print("índices:", ", ".join(index_names))
        for required in (f"{table}_user_id_created_at_idx", f"{table}_created_at_idx"):
            if required not in index_names:
                raise SystemExit(f"Falta índice requerido: {required}")

        # 4) volumen
        total = await conn.fetchval(f"SELECT count(*) FROM {table}")
        print(f"documentos: {total}")
    finally:
        await conn.close()

    raise SystemExit(0)


if __name__ == "__main__":
    asyncio.run(main())
