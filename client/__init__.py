"""Client for the sync portal HTTP API."""

from client.sync_client import (
    PollPolicy,
    SyncPollTimeout,
    SyncPortalClient,
    SyncPortalError,
)

__all__ = [
    "PollPolicy",
    "SyncPollTimeout",
    "SyncPortalClient",
    "SyncPortalError",
]
