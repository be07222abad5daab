"""FastAPI dependencies resolving the services built at startup."""

from fastapi import Request

from core.queue.status import StatusService
from core.queue.store import QueueStore
from core.queue.submission import SubmissionService


def get_store(request: Request) -> QueueStore:
    return request.app.state.store


def get_submission_service(request: Request) -> SubmissionService:
    return request.app.state.submission_service


def get_status_service(request: Request) -> StatusService:
    return request.app.state.status_service
