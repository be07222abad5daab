"""Status resolution for queued sync requests.

Looks a work item up by eventID and translates the worker's internal state
into the caller-facing status vocabulary. Resolution is a pure read.

A miss cannot tell "never submitted" from "submitted but not yet visible to
the index"; both come back as NotFoundError.
"""

from typing import NamedTuple, Optional

from core.errors import NotFoundError, StoreError, ValidationError
from core.models.work_item import ExternalStatus, StatusView, TransactionState
from core.observability.logging import get_logger, with_correlation
from core.observability.metrics import MetricsCollector, get_metrics
from core.queue.calls import call_store
from core.queue.store import QueueStore

logger = get_logger(__name__)

NOT_FOUND_MESSAGE = "Transaction not found."
MISSING_ID_MESSAGE = "Missing transaction ID."
STATUS_CHECK_FAILED_MESSAGE = "Internal Server Error during status check."

PROCESSING_MESSAGE = "Transaction is currently being processed or is waiting in the queue."
SUCCESS_MESSAGE = "Transaction completed successfully."


class StateMapping(NamedTuple):
    status: ExternalStatus
    http_status: int


STATE_TABLE = {
    TransactionState.SUCCESSFUL.value: StateMapping(ExternalStatus.SUCCESSFUL, 200),
    # takeover means the worker handed the item to an operator
    TransactionState.FAILED.value: StateMapping(ExternalStatus.FAILED, 400),
    TransactionState.TAKEOVER.value: StateMapping(ExternalStatus.FAILED, 400),
    TransactionState.NEW.value: StateMapping(ExternalStatus.PROCESSING, 200),
    TransactionState.PENDING.value: StateMapping(ExternalStatus.PROCESSING, 200),
    TransactionState.PROCESS.value: StateMapping(ExternalStatus.PROCESSING, 200),
    TransactionState.FINALIZE.value: StateMapping(ExternalStatus.PROCESSING, 200),
}

UNKNOWN_STATE_MAPPING = StateMapping(ExternalStatus.PROCESSING, 200)


def map_state(state: str) -> StateMapping:
    """Map an internal state to (external status, HTTP status).

    States outside the known set are reported as processing.
    """
    mapping = STATE_TABLE.get(state)
    if mapping is None:
        logger.warning(f"Unrecognized work item state: {state!r}")
        return UNKNOWN_STATE_MAPPING
    return mapping


def status_message(status: ExternalStatus, state: str) -> str:
    if status == ExternalStatus.SUCCESSFUL:
        return SUCCESS_MESSAGE
    if status == ExternalStatus.FAILED:
        return f"Transaction failed (State: {state})."
    return PROCESSING_MESSAGE


class StatusService:
    """Resolves eventIDs to caller-facing status views."""

    def __init__(
        self,
        store: QueueStore,
        timeout_seconds: float = 10.0,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.store = store
        self.timeout_seconds = timeout_seconds
        self.metrics = metrics or get_metrics()

    async def resolve(self, event_id: str) -> StatusView:
        """Return the current status of ``event_id``.

        Raises:
            ValidationError: Empty identifier
            NotFoundError: No visible item carries this eventID
            StoreError: The lookup failed or timed out
        """
        if not event_id:
            raise ValidationError(MISSING_ID_MESSAGE)

        with with_correlation(event_id=event_id):
            try:
                found = await call_store(
                    self.store.find_one("eventID", event_id),
                    "store.find",
                    self.timeout_seconds,
                )
            except StoreError as e:
                self.metrics.record_lookup_error()
                logger.exception(f"Error checking status for {event_id}")
                raise StoreError(STATUS_CHECK_FAILED_MESSAGE) from e

            if found is None:
                self.metrics.record_lookup_not_found()
                logger.info(f"Status lookup missed: {event_id}")
                raise NotFoundError(NOT_FOUND_MESSAGE)

            item = found.item
            mapping = map_state(item.state)
            self.metrics.record_lookup_found(mapping.status.value)
            logger.debug(f"Status lookup hit: {event_id} state={item.state}")

        return StatusView(
            id=event_id,
            status=mapping.status,
            state=item.state,
            message=status_message(mapping.status, item.state),
            created_at=item.created_at,
            http_status=mapping.http_status,
        )
