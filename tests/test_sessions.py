"""Tests for session persistence, expiry and the background sweep."""

from __future__ import annotations

import asyncio
import json
from datetime import timedelta

import pytest

from jobmatch_api.errors import StorageError


def _persisted_session_ids(store) -> list:
    return [row["id"] for row in json.loads(store.db_path.read_text(encoding="utf-8"))["sessions"]]


@pytest.mark.asyncio
async def test_create_and_get_session(store, clock) -> None:
    user = await store.upsert_user({"email": "s@x.com"})
    created = await store.create_session("sid-1", user.id, {"userId": user.id}, clock() + timedelta(hours=1))

    fetched = await store.get_session("sid-1")

    assert fetched == created
    assert fetched.expires_at == "2026-03-01T10:00:00.000Z"
    assert fetched.data == {"userId": user.id}
    assert _persisted_session_ids(store) == ["sid-1"]


@pytest.mark.asyncio
async def test_expired_session_is_removed_on_read(store, clock) -> None:
    await store.create_session("sid-1", "u1", None, clock() + timedelta(seconds=30))

    clock.advance(30)

    assert await store.get_session("sid-1") is None
    assert _persisted_session_ids(store) == []


@pytest.mark.asyncio
async def test_session_accepts_preformatted_expiry(store) -> None:
    await store.create_session("sid-1", "u1", {}, "2030-01-01T00:00:00.000Z")
    assert (await store.get_session("sid-1")).expires_at == "2030-01-01T00:00:00.000Z"


@pytest.mark.asyncio
async def test_delete_session_is_idempotent(store, clock, monkeypatch) -> None:
    await store.create_session("sid-1", "u1", {}, clock() + timedelta(hours=1))

    await store.delete_session("sid-1")
    assert await store.get_session("sid-1") is None

    def _fail_write(payload):
        raise AssertionError("absent session must not trigger a save")

    monkeypatch.setattr(store, "_write_snapshot", _fail_write)
    await store.delete_session("sid-1")
    await store.delete_session("never-existed")


@pytest.mark.asyncio
async def test_cleanup_removes_only_expired_sessions(store, clock) -> None:
    await store.create_session("old-1", "u1", {}, clock() + timedelta(minutes=1))
    await store.create_session("old-2", "u2", {}, clock() + timedelta(minutes=2))
    await store.create_session("fresh", "u3", {}, clock() + timedelta(days=1))

    clock.advance(60 * 5)

    assert await store.cleanup_expired_sessions() == 2
    assert _persisted_session_ids(store) == ["fresh"]
    assert await store.cleanup_expired_sessions() == 0


@pytest.mark.asyncio
async def test_sweep_task_removes_expired_sessions(store_factory, clock) -> None:
    store = await store_factory(session_sweep_interval_seconds=0.01)
    await store.start()
    await store.create_session("old", "u1", {}, clock() + timedelta(seconds=1))
    clock.advance(5)

    for _ in range(200):
        if not _persisted_session_ids(store):
            break
        await asyncio.sleep(0.01)

    assert _persisted_session_ids(store) == []
    await store.stop()


@pytest.mark.asyncio
async def test_sweep_survives_storage_errors(store_factory, clock, monkeypatch) -> None:
    store = await store_factory(session_sweep_interval_seconds=0.01)
    calls = []

    async def _failing_cleanup() -> int:
        calls.append(1)
        raise StorageError("disk gone")

    monkeypatch.setattr(store, "cleanup_expired_sessions", _failing_cleanup)
    await store.start()

    for _ in range(200):
        if len(calls) >= 2:
            break
        await asyncio.sleep(0.01)

    assert len(calls) >= 2
    assert store._sweep_task is not None and not store._sweep_task.done()
    await store.stop()


@pytest.mark.asyncio
async def test_sweep_survives_unexpected_errors(store_factory, monkeypatch, caplog) -> None:
    store = await store_factory(session_sweep_interval_seconds=0.01)
    calls = []

    async def _broken_cleanup() -> int:
        calls.append(1)
        raise AttributeError("'int' object has no attribute 'replace'")

    monkeypatch.setattr(store, "cleanup_expired_sessions", _broken_cleanup)
    caplog.set_level("ERROR", logger="jobmatch.api")
    await store.start()

    for _ in range(200):
        if len(calls) >= 2:
            break
        await asyncio.sleep(0.01)

    assert len(calls) >= 2
    assert not store._sweep_task.done()
    assert any("session_sweep_failed" in record.getMessage() for record in caplog.records)
    await store.stop()
    assert store._sweep_task is None


@pytest.mark.asyncio
async def test_stop_cancels_sweep_task(store_factory) -> None:
    store = await store_factory(session_sweep_interval_seconds=3600)
    await store.start()
    task = store._sweep_task
    assert task is not None

    await store.stop()

    assert task.cancelled()
    assert store._sweep_task is None
    await store.stop()


@pytest.mark.asyncio
async def test_zero_interval_disables_sweep(store) -> None:
    await store.start()
    assert store._sweep_task is None
