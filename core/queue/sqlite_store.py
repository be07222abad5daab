"""SQLite-backed queue store.

Items live in one ``queue_items`` table shared by every namespace and queue.
The business identifier is written as an indexed ``event_id`` column in the
same INSERT as the item, so a lookup by eventID sees an item as soon as
``append`` has returned (read-your-writes within one database file).

Every call opens its own connection on a worker thread, which keeps one
store instance safe for many concurrent requests.
"""

import asyncio
import json
import re
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.errors import StoreError
from core.models.work_item import QUEUE_NAME, WorkItem
from core.queue.store import QueueStore, StoredItem, record_to_item


# On-store field name -> dedicated column
_COLUMN_FIELDS = {
    "eventID": "event_id",
    "state": "state",
    "retriesCount": "retries_count",
    "type": "item_type",
}

_FIELD_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SqliteQueueStore(QueueStore):
    """Queue store on a local SQLite database file."""

    def __init__(
        self,
        db_path: Path,
        namespace: str = "test",
        queue: str = QUEUE_NAME,
        busy_timeout: float = 5.0,
    ):
        super().__init__(namespace, queue)
        self.db_path = Path(db_path)
        self.busy_timeout = busy_timeout

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), timeout=self.busy_timeout)
        conn.row_factory = sqlite3.Row
        return conn

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def _init_schema(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._connect()
        try:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS queue_items (
                    storage_key INTEGER PRIMARY KEY AUTOINCREMENT,
                    namespace TEXT NOT NULL,
                    queue TEXT NOT NULL,
                    event_id TEXT NOT NULL,
                    item_type TEXT,
                    state TEXT NOT NULL,
                    retries_count INTEGER NOT NULL DEFAULT 0,
                    payload TEXT NOT NULL,
                    created_ts INTEGER NOT NULL,
                    updated_at TEXT,
                    UNIQUE(namespace, queue, event_id)
                )
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_queue_items_state
                ON queue_items(namespace, queue, state)
            """)
            conn.commit()
        finally:
            conn.close()

    async def open(self) -> None:
        try:
            await asyncio.to_thread(self._init_schema)
        except sqlite3.Error as e:
            raise StoreError(f"Cannot initialize queue store at {self.db_path}: {e}") from e

    def _ping(self) -> None:
        conn = self._connect()
        try:
            conn.execute("SELECT 1 FROM queue_items LIMIT 1")
        finally:
            conn.close()

    async def ping(self) -> bool:
        try:
            await asyncio.to_thread(self._ping)
            return True
        except sqlite3.Error:
            return False

    # =========================================================================
    # Queue operations
    # =========================================================================

    def _insert(self, item: WorkItem) -> str:
        record = item.to_record()
        conn = self._connect()
        try:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO queue_items
                (namespace, queue, event_id, item_type, state, retries_count, payload, created_ts)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                self.namespace,
                self.queue,
                item.event_id,
                item.type,
                item.state,
                item.retries_count,
                json.dumps(record),
                item.timestamp,
            ))
            conn.commit()
            return str(cursor.lastrowid)
        finally:
            conn.close()

    async def append(self, item: WorkItem) -> str:
        try:
            return await asyncio.to_thread(self._insert, item)
        except sqlite3.IntegrityError as e:
            raise StoreError(f"eventID already queued: {item.event_id}") from e
        except sqlite3.Error as e:
            raise StoreError(f"Append to {self.path} failed: {e}") from e

    def _select(self, field: str, value: Any, limit: int) -> List[sqlite3.Row]:
        column = _COLUMN_FIELDS.get(field)
        if column is None:
            if not _FIELD_NAME_RE.match(field):
                raise StoreError(f"Unsupported query field: {field!r}")
            column = f"json_extract(payload, '$.{field}')"

        conn = self._connect()
        try:
            cursor = conn.execute(f"""
                SELECT storage_key, state, retries_count, payload
                FROM queue_items
                WHERE namespace = ? AND queue = ? AND {column} = ?
                ORDER BY storage_key ASC
                LIMIT ?
            """, (self.namespace, self.queue, value, limit))
            return cursor.fetchall()
        finally:
            conn.close()

    async def find_by_field(self, field: str, value: Any, limit: int = 1) -> List[StoredItem]:
        try:
            rows = await asyncio.to_thread(self._select, field, value, limit)
        except sqlite3.Error as e:
            raise StoreError(f"Query on {self.path} failed: {e}") from e
        return [_row_to_stored_item(row) for row in rows]

    def _update_state(self, storage_key: str, state: str, retries_count: Optional[int]) -> int:
        conn = self._connect()
        try:
            cursor = conn.cursor()
            cursor.execute("""
                UPDATE queue_items
                SET state = ?,
                    retries_count = COALESCE(?, retries_count),
                    updated_at = ?
                WHERE storage_key = ? AND namespace = ? AND queue = ?
            """, (
                state,
                retries_count,
                datetime.now(timezone.utc).isoformat(),
                int(storage_key),
                self.namespace,
                self.queue,
            ))
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()

    async def set_state(
        self,
        storage_key: str,
        state: str,
        retries_count: Optional[int] = None,
    ) -> None:
        try:
            updated = await asyncio.to_thread(self._update_state, storage_key, state, retries_count)
        except (sqlite3.Error, ValueError) as e:
            raise StoreError(f"State update at key {storage_key} failed: {e}") from e
        if not updated:
            raise StoreError(f"No work item at key {storage_key}")


def _row_to_stored_item(row: sqlite3.Row) -> StoredItem:
    """Rebuild a work item; state columns are authoritative over the payload."""
    storage_key = str(row["storage_key"])
    try:
        record: Dict[str, Any] = json.loads(row["payload"])
    except json.JSONDecodeError as e:
        raise StoreError(f"Corrupt payload at key {storage_key}: {e}") from e
    record["state"] = row["state"]
    record["retriesCount"] = row["retries_count"]
    return StoredItem(storage_key, record_to_item(storage_key, record))
