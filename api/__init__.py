"""API Package.

FastAPI server for the ERP Sync Portal.
"""

from api.server import create_app

__all__ = [
    "create_app",
]
