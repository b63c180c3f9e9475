"""SQLite-backed persistence layer.

One table holds both partitions, keyed by ``(partition, key)``, with JSON
values. Blocking sqlite calls run in a worker thread so the event loop keeps
painting while a write waits on a lock.

Read failures surface as ``TransientFetchError``; the color cache degrades to
an empty snapshot instead of failing a repaint.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from tasktint.coloring.errors import TransientFetchError
from tasktint.coloring.interfaces import ChangeListener, StorageChange, maybe_await
from tasktint.config import STORE_PATH
from tasktint.infrastructure.database import db_transaction, retry_on_db_lock
from tasktint.observability.logging import get_logger
from tasktint.observability.telemetry import counter
from tasktint.storage import keys

logger = get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    partition TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (partition, key)
)
"""


class SQLitePartition:
    def __init__(self, store: SQLiteStore, area: str) -> None:
        self._store = store
        self.area = area

    async def get(self, keys: Sequence[str]) -> dict[str, Any]:
        try:
            return await asyncio.to_thread(self._store._read, self.area, list(keys))
        except sqlite3.Error as e:
            counter("store.read_error")
            raise TransientFetchError(f"read from {self.area} failed: {e}") from e

    async def set(self, key: str, value: Any) -> None:
        old_value = await asyncio.to_thread(self._store._write, self.area, key, value)
        await self._store.notify({key: StorageChange(old_value, value)}, self.area)

    async def remove(self, key: str) -> None:
        old_value = await asyncio.to_thread(self._store._delete, self.area, key)
        if old_value is not None:
            await self._store.notify({key: StorageChange(old_value, None)}, self.area)


class SQLiteStore:
    def __init__(self, db_path: Path | str = STORE_PATH) -> None:
        self.db_path = Path(db_path)
        self._partitions = {area: SQLitePartition(self, area) for area in keys.PARTITIONS}
        self._listeners: list[ChangeListener] = []
        self._ensure_schema()

    @property
    def local(self) -> SQLitePartition:
        return self._partitions[keys.LOCAL]

    @property
    def sync(self) -> SQLitePartition:
        return self._partitions[keys.SYNC]

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def notify(self, changes: dict[str, StorageChange], area: str) -> None:
        for listener in list(self._listeners):
            try:
                await maybe_await(listener(changes, area))
            except Exception:  # noqa: BLE001
                logger.exception("Storage change listener %r failed", listener)

    @retry_on_db_lock()
    def _ensure_schema(self) -> None:
        with db_transaction(self.db_path) as conn:
            conn.execute(SCHEMA)
        logger.debug("Color store ready at %s", self.db_path)

    @retry_on_db_lock()
    def _read(self, area: str, names: list[str]) -> dict[str, Any]:
        if not names:
            return {}
        placeholders = ", ".join("?" for _ in names)
        with db_transaction(self.db_path) as conn:
            rows = conn.execute(
                f"SELECT key, value FROM kv_store WHERE partition = ? AND key IN ({placeholders})",
                (area, *names),
            ).fetchall()

        result: dict[str, Any] = {}
        for row in rows:
            try:
                result[row["key"]] = json.loads(row["value"])
            except json.JSONDecodeError as e:
                counter("store.corrupt_value")
                logger.warning("Skipping corrupt value for %s/%s: %s", area, row["key"], e)
        return result

    @retry_on_db_lock()
    def _write(self, area: str, key: str, value: Any) -> Any:
        """
        Upsert one key and return its previous value.

        Side Effects:
            - Writes one row to kv_store
        """
        payload = json.dumps(value)
        with db_transaction(self.db_path) as conn:
            old_value = self._current(conn, area, key)
            conn.execute(
                """
                INSERT INTO kv_store (partition, key, value, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT (partition, key)
                DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (area, key, payload, datetime.now(UTC).isoformat()),
            )
        return old_value

    @retry_on_db_lock()
    def _delete(self, area: str, key: str) -> Any:
        with db_transaction(self.db_path) as conn:
            old_value = self._current(conn, area, key)
            conn.execute("DELETE FROM kv_store WHERE partition = ? AND key = ?", (area, key))
        return old_value

    @staticmethod
    def _current(conn: sqlite3.Connection, area: str, key: str) -> Any:
        row = conn.execute(
            "SELECT value FROM kv_store WHERE partition = ? AND key = ?", (area, key)
        ).fetchone()
        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError:
            return None
