"""Sync submission endpoint.

POST /Sync queues an ERP sync request described by its headers and answers
202 right away with the eventID and the URL to poll.
"""

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from api.dependencies import get_submission_service
from core.queue.submission import SubmissionService


router = APIRouter()


class SyncAcceptedResponse(BaseModel):
    """Acknowledgment of a queued sync request."""
    success: bool = True
    id: str
    message: str
    status_url: str


@router.post("/Sync", status_code=202, response_model=SyncAcceptedResponse)
async def create_sync_transaction(
    request: Request,
    service: SubmissionService = Depends(get_submission_service),
) -> SyncAcceptedResponse:
    """Queue a sync request.

    **Headers:**
    - `COMPANY-ID` / `company_id` (required)
    - `TABLE-NAME` / `table_name` (required)
    - `CONTACT-ID` / `contact_id` (optional)
    - `STATUS` / `status` (optional)

    Each call queues a new item with a new id, even for repeated headers.
    """
    receipt = await service.submit(request.headers)
    return SyncAcceptedResponse(
        id=receipt.event_id,
        message=receipt.message,
        status_url=receipt.status_url,
    )
