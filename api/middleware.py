"""Bearer-token gate and error rendering.

Every request, including unknown paths, must carry
``Authorization: Bearer <token>`` matching the configured secret before any
route handler runs.
"""

import secrets
import uuid

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.errors import AuthError, PortalError
from core.observability.logging import get_logger, with_correlation

logger = get_logger(__name__)

MISSING_AUTH_MESSAGE = "Missing or invalid Authorization header"
INVALID_TOKEN_MESSAGE = "Forbidden: invalid token"
UNHANDLED_ERROR_MESSAGE = "Internal Server Error"

REQUEST_ID_HEADER = "X-Request-ID"


def error_response(error: PortalError) -> JSONResponse:
    """Render a portal error as ``{"error": message}``."""
    return JSONResponse({"error": error.message}, status_code=error.status_code)


def check_bearer_token(auth_header: str, expected_token: str) -> None:
    """Raise AuthError unless ``auth_header`` carries the expected token."""
    if not auth_header or not auth_header.startswith("Bearer "):
        raise AuthError(MISSING_AUTH_MESSAGE, 401)

    token = auth_header.split(" ")[1]
    if not secrets.compare_digest(token.encode("utf-8"), expected_token.encode("utf-8")):
        raise AuthError(INVALID_TOKEN_MESSAGE, 403)


class BearerAuthMiddleware(BaseHTTPMiddleware):
    """Reject unauthenticated requests and tag each request with an ID."""

    def __init__(self, app, token: str):
        super().__init__(app)
        self.token = token

    async def dispatch(self, request: Request, call_next):
        request_id = uuid.uuid4().hex
        with with_correlation(request_id=request_id):
            try:
                check_bearer_token(request.headers.get("authorization"), self.token)
            except AuthError as e:
                client = request.client.host if request.client else "-"
                logger.warning(f"Auth rejected ({e.status_code}) for {request.method} {request.url.path} from {client}")
                response = error_response(e)
            else:
                try:
                    response = await call_next(request)
                except Exception:
                    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
                    response = JSONResponse({"error": UNHANDLED_ERROR_MESSAGE}, status_code=500)

            response.headers[REQUEST_ID_HEADER] = request_id
            return response
