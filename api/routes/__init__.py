"""API Routes Package."""

from api.routes import health, status, sync

__all__ = [
    "health",
    "status",
    "sync",
]
