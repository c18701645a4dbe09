from __future__ import annotations

import logging
import time

from sqlalchemy import Column, Float, LargeBinary, MetaData, String, Table, text

from position_apr.application.ports.key_value_store_port import KeyValueStorePort


logger = logging.getLogger(__name__)

metadata = MetaData()

cache_entries = Table(
    "cache_entries",
    metadata,
    Column("key", String(255), primary_key=True),
    Column("value", LargeBinary, nullable=False),
    Column("updated_at", Float, nullable=False),
)


class SqlKeyValueStore(KeyValueStorePort):
    """Key-value store on a single `cache_entries` table (SQLite or PostgreSQL)."""

    def __init__(self, engine, *, clock=time.time):
        self._engine = engine
        self._clock = clock

    def open(self) -> None:
        metadata.create_all(self._engine, tables=[cache_entries])
        logger.info("sql_key_value_store: opened dialect=%s", self._engine.dialect.name)

    def close(self) -> None:
        self._engine.dispose()
        logger.info("sql_key_value_store: closed")

    def get(self, key: str) -> bytes | None:
        sql = text("SELECT value FROM cache_entries WHERE key = :key")
        with self._engine.connect() as conn:
            row = conn.execute(sql, {"key": key}).first()
        if row is None:
            return None
        return bytes(row[0])

    def set(self, key: str, value: bytes) -> None:
        sql = text(
            """
            INSERT INTO cache_entries (key, value, updated_at)
            VALUES (:key, :value, :updated_at)
            ON CONFLICT (key)
            DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """
        )
        with self._engine.begin() as conn:
            conn.execute(sql, {"key": key, "value": value, "updated_at": self._clock()})

    def delete(self, key: str) -> None:
        with self._engine.begin() as conn:
            conn.execute(text("DELETE FROM cache_entries WHERE key = :key"), {"key": key})

    def list_keys(self, prefix: str = "") -> list[str]:
        if not prefix:
            sql = text("SELECT key FROM cache_entries ORDER BY key")
            params = {}
        else:
            sql = text(
                "SELECT key FROM cache_entries WHERE substr(key, 1, :length) = :prefix ORDER BY key"
            )
            params = {"length": len(prefix), "prefix": prefix}
        with self._engine.connect() as conn:
            return [row[0] for row in conn.execute(sql, params)]
