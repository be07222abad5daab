"""Health check endpoints."""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.dependencies import get_store
from core.errors import ValidationError
from core.observability.logging import get_logger
from core.observability.metrics import get_metrics
from core.queue.store import QueueStore
from core.queue.submission import INVALID_HEADERS_MESSAGE
from core.queue.validation import validate_parameters

logger = get_logger(__name__)

router = APIRouter()


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@router.get("/health")
async def health_check(request: Request) -> Dict[str, Any]:
    """Health check that also echoes the validated sync headers.

    Lets a caller confirm both connectivity and that its headers would be
    accepted by POST /Sync.
    """
    logger.info(f"pinged {request.client.host if request.client else '-'}")

    params = validate_parameters(request.headers)
    if params is None:
        raise ValidationError(INVALID_HEADERS_MESSAGE)

    return {
        "status": "ok",
        "time": _utcnow_iso(),
        **params.to_dict(),
    }


@router.get("/ready")
async def readiness_check(store: QueueStore = Depends(get_store)):
    """Readiness: the queue store answers."""
    if await store.ping():
        return {"status": "ready"}
    return JSONResponse({"status": "unavailable"}, status_code=503)


@router.get("/live")
async def liveness_check() -> Dict[str, str]:
    """Liveness check."""
    return {"status": "alive"}


@router.get("/metrics")
async def metrics_summary() -> Dict[str, Any]:
    """In-process submission, lookup and store latency metrics."""
    return get_metrics().get_summary()
