#!/usr/bin/env python
"""Move a queued sync request to another state, the way the worker would.

For local development against the SQLite queue; the real automation worker
updates items through its own connection.

Usage:
    python scripts/set_state.py <event_id> process
    python scripts/set_state.py <event_id> failed --retries 3
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add repo root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from core.config import load_settings
from core.errors import StoreError
from core.models.work_item import TransactionState
from core.queue.factory import create_queue_store


async def set_state(event_id: str, state: str, retries: int = None) -> int:
    settings = load_settings()
    store = create_queue_store(settings)
    await store.open()
    try:
        found = await store.find_one("eventID", event_id)
        if found is None:
            print(f"No work item with eventID {event_id} in {store.path}", file=sys.stderr)
            return 1

        await store.set_state(found.storage_key, state, retries)
        print(f"{event_id}: {found.item.state} -> {state} (key {found.storage_key})")
        return 0
    finally:
        await store.close()


def main():
    """Entry point."""
    parser = argparse.ArgumentParser(description="Set the state of a queued sync request")
    parser.add_argument("event_id")
    parser.add_argument("state", choices=[s.value for s in TransactionState])
    parser.add_argument("--retries", type=int, help="New retriesCount")
    args = parser.parse_args()

    try:
        return asyncio.run(set_state(args.event_id, args.state, args.retries))
    except StoreError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
