"""Sync request submission.

Turns validated request headers into a new ``ERPSync`` work item on the
shared queue and acknowledges immediately. The service never waits for the
automation worker; callers poll the returned status URL.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Optional
from urllib.parse import quote

from core.errors import StoreError, ValidationError
from core.models.work_item import SubmissionReceipt, WorkItem
from core.observability.logging import get_logger, with_correlation
from core.observability.metrics import MetricsCollector, get_metrics
from core.queue.calls import call_store
from core.queue.identity import generate_event_id
from core.queue.store import QueueStore
from core.queue.validation import validate_parameters

logger = get_logger(__name__)

INVALID_HEADERS_MESSAGE = "Missing or invalid required headers."


def status_url_for(event_id: str) -> str:
    """Relative URL a caller polls for the item's status."""
    return f"/status/{quote(event_id, safe='')}"


class SubmissionService:
    """Validates, identifies and enqueues sync requests.

    Each submission gets a fresh eventID, so submitting the same business
    parameters twice queues two independent items. A failed append is not
    retried here; a caller that resubmits gets a new eventID.
    """

    def __init__(
        self,
        store: QueueStore,
        timeout_seconds: float = 10.0,
        metrics: Optional[MetricsCollector] = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.store = store
        self.timeout_seconds = timeout_seconds
        self.metrics = metrics or get_metrics()
        self._now = now

    async def submit(self, raw_headers: Any) -> SubmissionReceipt:
        """Queue a sync request described by ``raw_headers``.

        Raises:
            ValidationError: Company id or table name missing
            StoreError: The append failed or timed out
        """
        params = validate_parameters(raw_headers)
        if params is None:
            self.metrics.record_submission_rejected()
            logger.info("Rejected sync request: missing or invalid headers")
            raise ValidationError(INVALID_HEADERS_MESSAGE)

        event_id = generate_event_id(params.company_id, params.contact_id)
        item = WorkItem.create(event_id, params, now=self._now())

        with with_correlation(
            event_id=event_id,
            company_id=params.company_id,
            table_name=params.table_name,
        ):
            try:
                storage_key = await call_store(
                    self.store.append(item),
                    "store.append",
                    self.timeout_seconds,
                    shield=True,
                )
            except StoreError:
                self.metrics.record_submission_failed()
                logger.exception("Error creating transaction")
                raise

            self.metrics.record_submission_accepted(params.table_name)
            logger.info(
                f"New ERPSync transaction accepted: {event_id}",
                extra_fields={"storage_key": storage_key, "queue": self.store.path},
            )

        return SubmissionReceipt(event_id=event_id, status_url=status_url_for(event_id))
