"""Queue module - sync request admission, storage and status lookup."""

from core.queue.factory import create_queue_store
from core.queue.identity import generate_event_id
from core.queue.sqlite_store import SqliteQueueStore
from core.queue.status import StatusService, map_state
from core.queue.store import InMemoryQueueStore, QueueStore, StoredItem
from core.queue.submission import SubmissionService, status_url_for
from core.queue.validation import validate_parameters

__all__ = [
    "create_queue_store",
    "generate_event_id",
    "InMemoryQueueStore",
    "QueueStore",
    "SqliteQueueStore",
    "StatusService",
    "StoredItem",
    "SubmissionService",
    "map_state",
    "status_url_for",
    "validate_parameters",
]
