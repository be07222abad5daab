"""Error taxonomy for the sync portal.

Every error carries the HTTP status it maps to and the message that is
returned to the caller as ``{"error": message}``.
"""


class PortalError(Exception):
    """Base exception for portal errors."""
    status_code: int = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(PortalError):
    """Request failed header or parameter validation (400)."""
    status_code = 400


class AuthError(PortalError):
    """Missing, malformed (401) or wrong (403) bearer token."""
    status_code = 401


class NotFoundError(PortalError):
    """No work item is visible for the requested identifier (404)."""
    status_code = 404


class StoreError(PortalError):
    """Queue store failed or is unreachable (500)."""
    status_code = 500


class StoreTimeoutError(StoreError):
    """Queue store call exceeded its time bound."""
    pass
