"""Select a queue store backend from configuration."""

from pathlib import Path

from core.config import REPO_ROOT, Settings
from core.queue.sqlite_store import SqliteQueueStore
from core.queue.store import InMemoryQueueStore, QueueStore


MEMORY_SCHEME = "memory://"
SQLITE_SCHEME = "sqlite:///"


def resolve_sqlite_path(database_url: str) -> Path:
    """Turn ``sqlite:///file.db`` or a bare path into a filesystem path.

    Relative paths are resolved against the repository root.
    """
    raw = database_url[len(SQLITE_SCHEME):] if database_url.startswith(SQLITE_SCHEME) else database_url
    path = Path(raw)
    if not path.is_absolute():
        path = REPO_ROOT / path
    return path


def create_queue_store(settings: Settings) -> QueueStore:
    """Build the store named by ``settings.database_url``.

    Raises:
        ValueError: If the URL uses an unsupported scheme
    """
    url = settings.database_url
    if url.startswith(MEMORY_SCHEME):
        return InMemoryQueueStore(namespace=settings.namespace)
    if "://" in url and not url.startswith(SQLITE_SCHEME):
        raise ValueError(f"Unsupported DATABASE_URL scheme: {url}")
    return SqliteQueueStore(resolve_sqlite_path(url), namespace=settings.namespace)
