import anyio
import pytest

from session_service.errors import SessionNotFound, StoreExhausted
from session_service.session_store import InMemorySessionStore, SessionStore

pytestmark = pytest.mark.anyio


async def test_create_initializes_timestamps(store, clock):
    rec = await store.create()
    assert rec.data == {}
    assert rec.created_at == rec.last_accessed_at == clock.now
    assert rec.expires_at == clock.now + 3600
    assert len(store) == 1


async def test_implements_protocol(store):
    assert isinstance(store, SessionStore)


async def test_get_unknown_is_none(store):
    assert await store.get("nope") is None


async def test_get_does_not_touch_last_accessed(store, clock):
    rec = await store.create()
    clock.advance(10)
    got = await store.get(rec.id)
    assert got.last_accessed_at == rec.last_accessed_at


async def test_expired_record_is_absent_and_purged(store, clock):
    rec = await store.create()
    clock.advance(3600)
    assert await store.get(rec.id) is None
    assert len(store) == 0


async def test_set_replaces_data_and_returns_copies(store):
    rec = await store.create()
    payload = {"userId": "alice"}
    await store.set(rec.id, payload)
    payload["userId"] = "mallory"

    got = await store.get(rec.id)
    assert got.data == {"userId": "alice"}
    got.data["userId"] = "eve"
    assert (await store.get(rec.id)).data == {"userId": "alice"}


async def test_set_on_absent_raises(store, clock):
    with pytest.raises(SessionNotFound):
        await store.set("missing", {})

    rec = await store.create()
    clock.advance(4000)
    with pytest.raises(SessionNotFound):
        await store.set(rec.id, {"a": 1})


async def test_touch_extends_expiry(store, clock):
    rec = await store.create()
    clock.advance(3000)
    await store.touch(rec.id, clock.now + 3600)
    clock.advance(3000)
    got = await store.get(rec.id)
    assert got is not None
    assert got.last_accessed_at == clock.now - 3000


async def test_touch_absent_is_noop(store):
    await store.touch("missing", 0)
    assert len(store) == 0


async def test_delete_is_idempotent(store):
    rec = await store.create()
    await store.delete(rec.id)
    await store.delete(rec.id)
    assert await store.get(rec.id) is None


async def test_sweep_removes_only_expired(store, clock):
    old = await store.create()
    clock.advance(1800)
    fresh = await store.create()
    clock.advance(1800)

    assert await store.sweep_expired() == 1
    assert len(store) == 1
    assert await store.get(fresh.id) is not None
    assert await store.get(old.id) is None


async def test_sweep_skips_records_in_use(store, clock):
    rec = await store.create()
    clock.advance(3600)
    async with store.lock(rec.id):
        assert await store.sweep_expired() == 0
    assert await store.sweep_expired() == 1


async def test_capacity_limit(codec, clock):
    capped = InMemorySessionStore(codec, max_age_seconds=60, max_sessions=2, clock=clock)
    await capped.create()
    await capped.create()
    with pytest.raises(StoreExhausted):
        await capped.create()

    # expired records free their slots
    clock.advance(61)
    await capped.create()
    assert len(capped) == 1


async def test_lock_serializes_same_id(store):
    order = []

    async def worker(name):
        async with store.lock("sid"):
            order.append(f"{name}-in")
            await anyio.sleep(0.01)
            order.append(f"{name}-out")

    async with anyio.create_task_group() as tg:
        tg.start_soon(worker, "a")
        tg.start_soon(worker, "b")

    assert order in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])


async def test_lock_does_not_block_other_ids(store):
    async with store.lock("one"):
        with anyio.fail_after(1):
            async with store.lock("two"):
                pass


async def test_lock_entries_are_released(store):
    async with store.lock("sid"):
        pass
    assert store._locks == {}


async def test_nested_values_are_copied(store):
    rec = await store.create()
    payload = {"tags": ["a"], "profile": {"name": "alice"}}
    await store.set(rec.id, payload)
    payload["tags"].append("leak")

    got = await store.get(rec.id)
    got.data["tags"].append("x")
    got.data["profile"]["name"] = "eve"

    assert (await store.get(rec.id)).data == {"tags": ["a"], "profile": {"name": "alice"}}
