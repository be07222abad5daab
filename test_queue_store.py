"""
Queue Store Tests

Validates both backends against the same contract:
1. append returns distinct, increasing storage keys
2. find_by_field locates items by eventID (and other fields)
3. The in-memory index lag hides fresh items until it elapses
4. SQLite lookups see an item as soon as append returns
5. Namespaces isolate service instances
"""

import asyncio
from datetime import datetime, timezone

import pytest

from core.config import REPO_ROOT, Settings
from core.errors import StoreError
from core.models.work_item import SyncParameters, WorkItem
from core.queue.factory import create_queue_store, resolve_sqlite_path
from core.queue.identity import generate_event_id
from core.queue.sqlite_store import SqliteQueueStore
from core.queue.store import InMemoryQueueStore


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_item(company_id: str = "C1", table_name: str = "orders") -> WorkItem:
    params = SyncParameters(company_id=company_id, table_name=table_name)
    return WorkItem.create(generate_event_id(company_id), params)


@pytest.fixture
def sqlite_store(tmp_path):
    store = SqliteQueueStore(tmp_path / "queue.db", namespace="pytest")
    asyncio.run(store.open())
    yield store
    asyncio.run(store.close())


class TestInMemoryQueueStore:
    """Dict-backed store with simulated index lag."""

    def test_append_then_find(self):
        async def scenario():
            store = InMemoryQueueStore()
            item = make_item()
            key = await store.append(item)
            found = await store.find_one("eventID", item.event_id)
            return key, found, item

        key, found, item = asyncio.run(scenario())

        assert found is not None
        assert found.storage_key == key
        assert found.item == item

    def test_storage_keys_increase(self):
        async def scenario():
            store = InMemoryQueueStore()
            return [await store.append(make_item()) for _ in range(3)]

        keys = asyncio.run(scenario())

        assert keys == sorted(keys)
        assert len(set(keys)) == 3

    def test_index_lag_hides_fresh_items(self):
        clock = FakeClock()
        store = InMemoryQueueStore(index_lag_seconds=2.0, clock=clock)
        item = make_item()

        async def scenario():
            await store.append(item)
            before = await store.find_one("eventID", item.event_id)
            clock.advance(2.0)
            after = await store.find_one("eventID", item.event_id)
            return before, after

        before, after = asyncio.run(scenario())

        assert before is None
        assert after is not None
        assert after.item.event_id == item.event_id

    def test_flush_index_makes_items_visible(self):
        store = InMemoryQueueStore(index_lag_seconds=60.0, clock=FakeClock())
        item = make_item()

        async def scenario():
            await store.append(item)
            store.flush_index()
            return await store.find_one("eventID", item.event_id)

        assert asyncio.run(scenario()) is not None

    def test_set_state_is_visible_to_lookups(self):
        async def scenario():
            store = InMemoryQueueStore()
            item = make_item()
            key = await store.append(item)
            await store.set_state(key, "process", retries_count=2)
            return await store.find_one("eventID", item.event_id)

        found = asyncio.run(scenario())

        assert found.item.state == "process"
        assert found.item.retries_count == 2

    def test_find_by_other_field_respects_limit(self):
        async def scenario():
            store = InMemoryQueueStore()
            for _ in range(3):
                await store.append(make_item())
            return await store.find_by_field("type", "ERPSync", limit=2)

        assert len(asyncio.run(scenario())) == 2

    def test_closed_store_raises(self):
        async def scenario():
            store = InMemoryQueueStore()
            await store.close()
            await store.append(make_item())

        with pytest.raises(StoreError):
            asyncio.run(scenario())

    def test_malformed_record_raises_store_error(self):
        async def scenario():
            store = InMemoryQueueStore()
            key = await store.append(make_item())
            store._records[key]["retriesCount"] = -1
            await store.find_by_field("type", "ERPSync")

        with pytest.raises(StoreError):
            asyncio.run(scenario())

    def test_path_includes_namespace(self):
        assert InMemoryQueueStore(namespace="prod").path == "/prod/UiPathAPITransactions"


class TestSqliteQueueStore:
    """SQLite store on a temporary database file."""

    def test_read_your_writes(self, sqlite_store):
        item = make_item()

        async def scenario():
            key = await sqlite_store.append(item)
            return key, await sqlite_store.find_one("eventID", item.event_id)

        key, found = asyncio.run(scenario())

        assert found is not None
        assert found.storage_key == key
        assert found.item.to_record() == item.to_record()

    def test_keys_are_monotonic(self, sqlite_store):
        async def scenario():
            return [int(await sqlite_store.append(make_item())) for _ in range(3)]

        keys = asyncio.run(scenario())

        assert keys == sorted(keys)
        assert len(set(keys)) == 3

    def test_unknown_event_id_returns_none(self, sqlite_store):
        assert asyncio.run(sqlite_store.find_one("eventID", "nope")) is None

    def test_duplicate_event_id_is_refused(self, sqlite_store):
        item = make_item()

        async def scenario():
            await sqlite_store.append(item)
            await sqlite_store.append(item)

        with pytest.raises(StoreError):
            asyncio.run(scenario())

    def test_set_state_updates_state_and_retries(self, sqlite_store):
        item = make_item()

        async def scenario():
            key = await sqlite_store.append(item)
            await sqlite_store.set_state(key, "pending", retries_count=1)
            await sqlite_store.set_state(key, "successful")
            return await sqlite_store.find_one("eventID", item.event_id)

        found = asyncio.run(scenario())

        assert found.item.state == "successful"
        assert found.item.retries_count == 1

    def test_set_state_on_missing_key_raises(self, sqlite_store):
        with pytest.raises(StoreError):
            asyncio.run(sqlite_store.set_state("999", "failed"))

    def test_query_by_payload_field(self, sqlite_store):
        item = make_item()

        async def scenario():
            await sqlite_store.append(make_item())
            await sqlite_store.append(item)
            return await sqlite_store.find_by_field("timeStamp", item.timestamp, limit=5)

        matches = asyncio.run(scenario())

        assert item.event_id in {m.item.event_id for m in matches}

    def test_rejects_unsafe_field_names(self, sqlite_store):
        with pytest.raises(StoreError):
            asyncio.run(sqlite_store.find_by_field("x') OR 1=1 --", "v"))

    def test_namespaces_are_isolated(self, tmp_path):
        db_path = tmp_path / "shared.db"
        store_a = SqliteQueueStore(db_path, namespace="a")
        store_b = SqliteQueueStore(db_path, namespace="b")
        item = make_item()

        async def scenario():
            await store_a.open()
            await store_b.open()
            await store_a.append(item)
            return (
                await store_a.find_one("eventID", item.event_id),
                await store_b.find_one("eventID", item.event_id),
            )

        in_a, in_b = asyncio.run(scenario())

        assert in_a is not None
        assert in_b is None

    def test_concurrent_appends(self, sqlite_store):
        items = [make_item() for _ in range(20)]

        async def scenario():
            keys = await asyncio.gather(*(sqlite_store.append(i) for i in items))
            found = await asyncio.gather(*(sqlite_store.find_one("eventID", i.event_id) for i in items))
            return keys, found

        keys, found = asyncio.run(scenario())

        assert len(set(keys)) == 20
        assert all(f is not None for f in found)

    def test_ping(self, sqlite_store):
        assert asyncio.run(sqlite_store.ping()) is True


class TestCreateQueueStore:
    """Backend selection from DATABASE_URL."""

    def test_memory_url(self):
        store = create_queue_store(Settings(database_url="memory://", namespace="dev"))

        assert isinstance(store, InMemoryQueueStore)
        assert store.namespace == "dev"

    def test_sqlite_url(self, tmp_path):
        store = create_queue_store(Settings(database_url=f"sqlite:///{tmp_path}/q.db"))

        assert isinstance(store, SqliteQueueStore)
        assert store.db_path == tmp_path / "q.db"

    def test_relative_path_resolves_against_repo_root(self):
        assert resolve_sqlite_path("sqlite:///data/q.db") == REPO_ROOT / "data" / "q.db"
        assert resolve_sqlite_path("q.db") == REPO_ROOT / "q.db"

    def test_unsupported_scheme(self):
        with pytest.raises(ValueError):
            create_queue_store(Settings(database_url="postgres://db/queue"))


class TestWorkItem:
    """Work item construction."""

    def test_create_uses_bangkok_civil_time(self):
        now = datetime(2024, 1, 1, 20, 30, 15, tzinfo=timezone.utc)
        params = SyncParameters(company_id="C1", table_name="orders")

        item = WorkItem.create("C1-x", params, now=now)

        assert item.date == "2024-01-02"
        assert item.time == "03:30:15"
        assert item.timestamp == 1704141015000
        assert item.created_at == "2024-01-02 03:30:15"

    def test_record_uses_store_field_names(self):
        record = make_item().to_record()

        assert set(record) == {
            "eventID", "date", "time", "state", "retriesCount",
            "timeStamp", "parameters", "type",
        }
        assert record["state"] == "new"
        assert record["retriesCount"] == 0
        assert record["type"] == "ERPSync"
        assert record["parameters"] == {"COMPANY_ID": "C1", "TABLE_NAME": "orders"}
