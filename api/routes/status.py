"""Transaction status endpoint."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from api.dependencies import get_status_service
from core.errors import ValidationError
from core.queue.status import MISSING_ID_MESSAGE, StatusService


router = APIRouter()


class StatusResponse(BaseModel):
    """Status of a queued sync request."""
    id: str
    status: str
    state: str
    message: str
    created_at: str


class ErrorResponse(BaseModel):
    error: str


@router.get(
    "/status/{event_id:path}",
    response_model=StatusResponse,
    responses={
        400: {"model": StatusResponse, "description": "Transaction failed, or missing id"},
        404: {"model": ErrorResponse, "description": "Not found or not yet visible"},
        500: {"model": ErrorResponse, "description": "Lookup failed"},
    },
)
async def get_transaction_status(
    event_id: str,
    service: StatusService = Depends(get_status_service),
) -> JSONResponse:
    """Resolve the current status of a sync request.

    A 404 shortly after submission can mean the item is not indexed yet;
    poll again with backoff.
    """
    view = await service.resolve(event_id)
    return JSONResponse(view.model_dump(mode="json"), status_code=view.http_status)


@router.get("/status", include_in_schema=False)
async def missing_transaction_id():
    raise ValidationError(MISSING_ID_MESSAGE)
