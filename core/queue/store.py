"""Queue store backends.

The portal needs two things from the shared queue: append an item under a
store-generated key, and find an item again by one of its fields. Backends:
- InMemoryQueueStore: For development/testing, with simulated index lag
- SqliteQueueStore: For single-server deployments (core.queue.sqlite_store)

Lookups by field go through a secondary index, and a backend is allowed to
make a fresh item visible to lookups some time after ``append`` returned.
Callers must treat a miss right after a write as "not yet visible".
"""

import threading
import time
from abc import ABC, abstractmethod
from itertools import count
from typing import Any, Callable, Dict, List, NamedTuple, Optional

from pydantic import ValidationError as ModelValidationError

from core.errors import StoreError
from core.models.work_item import QUEUE_NAME, WorkItem


class StoredItem(NamedTuple):
    """A work item together with the key the store assigned to it."""
    storage_key: str
    item: WorkItem


def record_to_item(storage_key: str, record: Dict[str, Any]) -> WorkItem:
    """Load a raw store record, raising StoreError if it is not a work item."""
    try:
        return WorkItem.model_validate(record)
    except ModelValidationError as e:
        raise StoreError(f"Malformed work item at key {storage_key}: {e}") from e


class QueueStore(ABC):
    """Abstract base class for the shared work-item queue."""

    def __init__(self, namespace: str = "test", queue: str = QUEUE_NAME):
        self.namespace = namespace
        self.queue = queue

    @property
    def path(self) -> str:
        """Location of the queue inside the store."""
        return f"/{self.namespace}/{self.queue}"

    async def open(self) -> None:
        """Prepare the backend. Called once at startup."""
        pass

    async def close(self) -> None:
        """Release backend resources. Called once at shutdown."""
        pass

    async def ping(self) -> bool:
        """Return True if the backend is reachable."""
        return True

    @abstractmethod
    async def append(self, item: WorkItem) -> str:
        """Durably append an item and return its generated storage key."""
        pass

    @abstractmethod
    async def find_by_field(self, field: str, value: Any, limit: int = 1) -> List[StoredItem]:
        """Return up to ``limit`` visible items whose ``field`` equals ``value``.

        Results are ordered by storage key. ``field`` uses on-store names
        (``eventID``, ``state``, ...).
        """
        pass

    @abstractmethod
    async def set_state(
        self,
        storage_key: str,
        state: str,
        retries_count: Optional[int] = None,
    ) -> None:
        """Worker-side mutation path.

        The submission and status services never call this; it exists for
        the automation worker and for local simulation of it.
        """
        pass

    async def find_one(self, field: str, value: Any) -> Optional[StoredItem]:
        """First visible item whose ``field`` equals ``value``, or None."""
        matches = await self.find_by_field(field, value, limit=1)
        return matches[0] if matches else None


class InMemoryQueueStore(QueueStore):
    """In-memory queue for development/testing.

    ``index_lag_seconds`` delays the visibility of each appended item to
    ``find_by_field`` by that long, measured on ``clock``.

    WARNING: Items are lost on restart. Use only for development.
    """

    def __init__(
        self,
        namespace: str = "test",
        queue: str = QUEUE_NAME,
        index_lag_seconds: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(namespace, queue)
        self.index_lag_seconds = index_lag_seconds
        self._clock = clock
        self._records: Dict[str, Dict[str, Any]] = {}
        self._visible_at: Dict[str, float] = {}
        self._keys = count(1)
        self._lock = threading.Lock()
        self._closed = False

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreError(f"Queue store {self.path} is closed")

    async def open(self) -> None:
        self._closed = False

    async def close(self) -> None:
        self._closed = True

    async def ping(self) -> bool:
        return not self._closed

    async def append(self, item: WorkItem) -> str:
        self._ensure_open()
        with self._lock:
            storage_key = f"{next(self._keys):020d}"
            self._records[storage_key] = item.to_record()
            self._visible_at[storage_key] = self._clock() + self.index_lag_seconds
            return storage_key

    async def find_by_field(self, field: str, value: Any, limit: int = 1) -> List[StoredItem]:
        self._ensure_open()
        now = self._clock()
        with self._lock:
            matches = [
                (key, dict(record))
                for key, record in sorted(self._records.items())
                if self._visible_at[key] <= now and record.get(field) == value
            ][:limit]
        return [StoredItem(key, record_to_item(key, record)) for key, record in matches]

    async def set_state(
        self,
        storage_key: str,
        state: str,
        retries_count: Optional[int] = None,
    ) -> None:
        self._ensure_open()
        with self._lock:
            record = self._records.get(storage_key)
            if record is None:
                raise StoreError(f"No work item at key {storage_key}")
            record["state"] = state
            if retries_count is not None:
                record["retriesCount"] = retries_count

    def all_records(self) -> Dict[str, Dict[str, Any]]:
        """Snapshot of every stored record, visible or not, by storage key."""
        with self._lock:
            return {key: dict(record) for key, record in self._records.items()}

    def flush_index(self) -> None:
        """Make every appended item visible to lookups immediately."""
        now = self._clock()
        with self._lock:
            for key in self._visible_at:
                self._visible_at[key] = min(self._visible_at[key], now)
