"""Unit tests for the memory and SQLite persistence layers"""

from __future__ import annotations

import asyncio
import sqlite3

import pytest

from tasktint.coloring.errors import TransientFetchError
from tasktint.infrastructure.database import retry_on_db_lock
from tasktint.storage import keys
from tasktint.storage.memory import MemoryStore
from tasktint.storage.sqlite_store import SQLiteStore


class TestMemoryStore:
    def test_get_returns_copies(self):
        store = MemoryStore()

        async def scenario():
            await store.sync.set(keys.GROUP_COLORS, {"G1": "#fff"})
            data = await store.sync.get([keys.GROUP_COLORS, "missing"])
            data[keys.GROUP_COLORS]["G2"] = "#000"
            return data, await store.sync.get([keys.GROUP_COLORS])

        first, second = asyncio.run(scenario())
        assert "missing" not in first
        assert second == {keys.GROUP_COLORS: {"G1": "#fff"}}

    def test_partitions_are_separate(self):
        store = MemoryStore()

        async def scenario():
            await store.local.set("shared", 1)
            return await store.sync.get(["shared"])

        assert asyncio.run(scenario()) == {}

    def test_change_notifications(self):
        store = MemoryStore()
        seen = []
        unsubscribe = store.on_change(lambda changes, area: seen.append((area, changes)))

        async def scenario():
            await store.sync.set(keys.GROUP_COLORS, {"G1": "#fff"})
            await store.sync.set(keys.GROUP_COLORS, {"G1": "#000"})
            unsubscribe()
            await store.sync.remove(keys.GROUP_COLORS)

        asyncio.run(scenario())
        assert len(seen) == 2
        area, changes = seen[1]
        assert area == keys.SYNC
        assert changes[keys.GROUP_COLORS].old_value == {"G1": "#fff"}
        assert changes[keys.GROUP_COLORS].new_value == {"G1": "#000"}

    def test_failing_listener_does_not_break_writes(self):
        store = MemoryStore()

        def explode(changes, area):
            raise RuntimeError("listener bug")

        store.on_change(explode)

        async def scenario():
            await store.local.set(keys.IDENTITY_GROUPS, {"A": "G1"})
            return await store.local.get([keys.IDENTITY_GROUPS])

        assert asyncio.run(scenario()) == {keys.IDENTITY_GROUPS: {"A": "G1"}}


class TestSQLiteStore:
    def test_round_trip_and_notifications(self, tmp_path):
        store = SQLiteStore(tmp_path / "colors.db")
        seen = []
        store.on_change(lambda changes, area: seen.append((area, dict(changes))))

        async def scenario():
            await store.sync.set(keys.OCCURRENCE_COLORS, {"A": "#ea4335"})
            await store.sync.set(keys.OCCURRENCE_COLORS, {"A": "#34a853"})
            await store.local.set(keys.IDENTITY_GROUPS, {"A": "G1"})
            return (
                await store.sync.get([keys.OCCURRENCE_COLORS, keys.IDENTITY_GROUPS]),
                await store.local.get([keys.IDENTITY_GROUPS]),
            )

        synced, local = asyncio.run(scenario())
        assert synced == {keys.OCCURRENCE_COLORS: {"A": "#34a853"}}
        assert local == {keys.IDENTITY_GROUPS: {"A": "G1"}}
        assert seen[1][1][keys.OCCURRENCE_COLORS].old_value == {"A": "#ea4335"}

    def test_values_persist_across_instances(self, tmp_path):
        path = tmp_path / "colors.db"
        asyncio.run(SQLiteStore(path).sync.set(keys.GROUP_COLORS, {"G1": "#ff6d01"}))

        reopened = SQLiteStore(path)
        assert asyncio.run(reopened.sync.get([keys.GROUP_COLORS])) == {
            keys.GROUP_COLORS: {"G1": "#ff6d01"}
        }

    def test_remove(self, tmp_path):
        store = SQLiteStore(tmp_path / "colors.db")

        async def scenario():
            await store.sync.set(keys.PATTERN_COLORS, {"Standup|9am": "#34a853"})
            await store.sync.remove(keys.PATTERN_COLORS)
            return await store.sync.get([keys.PATTERN_COLORS])

        assert asyncio.run(scenario()) == {}

    def test_read_failure_is_transient(self, tmp_path):
        store = SQLiteStore(tmp_path / "colors.db")
        with sqlite3.connect(tmp_path / "colors.db") as conn:
            conn.execute("DROP TABLE kv_store")

        with pytest.raises(TransientFetchError):
            asyncio.run(store.sync.get([keys.GROUP_COLORS]))


class TestRetryOnDbLock:
    def test_retries_lock_errors(self):
        attempts = []

        @retry_on_db_lock(max_retries=3, base_delay=0.001, max_delay=0.001)
        def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise sqlite3.OperationalError("database is locked")
            return "ok"

        assert flaky() == "ok"
        assert len(attempts) == 3

    def test_gives_up_after_max_retries(self):
        @retry_on_db_lock(max_retries=2, base_delay=0.001, max_delay=0.001)
        def always_locked():
            raise sqlite3.OperationalError("database is locked")

        with pytest.raises(sqlite3.OperationalError):
            always_locked()

    def test_other_errors_not_retried(self):
        attempts = []

        @retry_on_db_lock(max_retries=3, base_delay=0.001)
        def broken():
            attempts.append(1)
            raise sqlite3.OperationalError("no such table: kv_store")

        with pytest.raises(sqlite3.OperationalError):
            broken()
        assert len(attempts) == 1
