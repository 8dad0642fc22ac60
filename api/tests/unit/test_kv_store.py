"""
Tests del lock distribuido, del cursor persistido y del adaptador Redis.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from app.domain.entities.directory import SyncCursor
from app.infrastructure.kv.redis_store import DistributedLock, RedisKeyValueStore
from app.infrastructure.repositories.sync_cursor_repository import SyncCursorRepository


class TestDistributedLock:
    @pytest.mark.asyncio
    async def test_second_holder_is_rejected(self, kv_store) -> None:
        first = DistributedLock(kv_store, "job", lease_seconds=300)
        second = DistributedLock(kv_store, "job", lease_seconds=300)

        assert await first.acquire() is True
        assert await second.acquire() is False
        assert kv_store.ttls["lock:job"] == 300

        await first.release()
        assert await second.acquire() is True

    @pytest.mark.asyncio
    async def test_release_keeps_foreign_token(self, kv_store) -> None:
        lock = DistributedLock(kv_store, "job")
        await lock.acquire()
        kv_store.data["lock:job"] = "someone-else"

        await lock.release()

        assert kv_store.data["lock:job"] == "someone-else"

    @pytest.mark.asyncio
    async def test_context_manager(self, kv_store) -> None:
        async with DistributedLock(kv_store, "job") as acquired:
            assert acquired is True
            assert "lock:job" in kv_store.data
        assert "lock:job" not in kv_store.data


class TestSyncCursorRepository:
    @pytest.mark.asyncio
    async def test_missing_cursor_defaults_to_lookback(self, kv_store) -> None:
        repo = SyncCursorRepository(kv_store, default_lookback=timedelta(minutes=10))

        cursor = await repo.load("corp")

        age = datetime.now(timezone.utc) - cursor.last_synced_at
        assert timedelta(minutes=9) < age < timedelta(minutes=11)

    @pytest.mark.asyncio
    async def test_save_and_load_unix_seconds(self, kv_store) -> None:
        repo = SyncCursorRepository(kv_store)
        moment = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

        await repo.save(SyncCursor("corp", moment))

        assert kv_store.data["mingdao_sync:last_time:corp"] == str(int(moment.timestamp()))
        assert (await repo.load("corp")).last_synced_at == moment

    @pytest.mark.asyncio
    async def test_corrupt_cursor_falls_back(self, kv_store) -> None:
        kv_store.data["mingdao_sync:last_time:corp"] = "not-a-number"
        repo = SyncCursorRepository(kv_store)

        cursor = await repo.load("corp")

        assert cursor.last_synced_at > datetime(2020, 1, 1, tzinfo=timezone.utc)


class TestRedisKeyValueStore:
    @pytest.mark.asyncio
    async def test_set_maps_to_nx_ex(self) -> None:
        client = AsyncMock()
        client.set.return_value = None
        store = RedisKeyValueStore(client)

        acquired = await store.set("k", "v", ttl_seconds=30, only_if_absent=True)

        assert acquired is False
        client.set.assert_awaited_once_with("k", "v", ex=30, nx=True)

    @pytest.mark.asyncio
    async def test_get_decodes_bytes(self) -> None:
        client = AsyncMock()
        client.get.return_value = b"123"

        assert await RedisKeyValueStore(client).get("k") == "123"


def test_cursor_never_moves_backwards() -> None:
    now = datetime(2025, 1, 1, tzinfo=timezone.utc)
    cursor = SyncCursor("corp", now)

    assert cursor.advance_to(now - timedelta(hours=1)).last_synced_at == now
    assert cursor.advance_to(now + timedelta(minutes=5)).last_synced_at == now + timedelta(minutes=5)
