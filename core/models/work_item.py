"""Work item and status models for the ERP sync queue.

A work item is written once by the portal in state ``new`` and from then on is
owned by the external automation worker, which advances ``state`` and
``retriesCount`` in place. Field aliases are the on-store field names shared
with that worker.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field


WORK_ITEM_TYPE = "ERPSync"
QUEUE_NAME = "UiPathAPITransactions"

# Creation timestamps are civil time in Bangkok regardless of server locale.
BANGKOK_TZ = ZoneInfo("Asia/Bangkok")


# =============================================================================
# ENUMS
# =============================================================================

class TransactionState(str, Enum):
    """Internal lifecycle states written by the worker."""
    NEW = "new"
    PROCESS = "process"
    PENDING = "pending"
    FAILED = "failed"
    SUCCESSFUL = "successful"
    FINALIZE = "finalize"
    TAKEOVER = "takeover"


class ExternalStatus(str, Enum):
    """Status vocabulary exposed to callers."""
    PROCESSING = "processing"
    SUCCESSFUL = "successful"
    FAILED = "failed"


TERMINAL_STATES = frozenset({
    TransactionState.SUCCESSFUL,
    TransactionState.FAILED,
    TransactionState.TAKEOVER,
})


# =============================================================================
# REQUEST PARAMETERS
# =============================================================================

class SyncParameters(BaseModel):
    """Validated business fields of a sync request, under canonical names."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    company_id: str = Field(..., alias="COMPANY_ID")
    contact_id: Optional[str] = Field(None, alias="CONTACT_ID")
    table_name: str = Field(..., alias="TABLE_NAME")
    status: Optional[str] = Field(None, alias="STATUS")

    def to_dict(self) -> Dict[str, str]:
        """Canonical mapping with absent optional fields omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)


# =============================================================================
# WORK ITEM
# =============================================================================

class WorkItem(BaseModel):
    """One queued synchronization request.

    ``state`` is kept as a plain string so that items whose state was set by a
    newer worker to an unknown value still load.
    """
    model_config = ConfigDict(populate_by_name=True)

    event_id: str = Field(..., alias="eventID")
    date: str = Field(..., description="Creation date in Bangkok, YYYY-MM-DD")
    time: str = Field(..., description="Creation time in Bangkok, HH:mm:ss")
    state: str = Field(default=TransactionState.NEW.value)
    retries_count: int = Field(default=0, ge=0, alias="retriesCount")
    timestamp: int = Field(..., alias="timeStamp", description="Epoch milliseconds")
    parameters: Dict[str, Any] = Field(default_factory=dict)
    type: str = Field(default=WORK_ITEM_TYPE)

    @classmethod
    def create(
        cls,
        event_id: str,
        parameters: SyncParameters,
        now: Optional[datetime] = None,
    ) -> "WorkItem":
        """Build a fresh item in state ``new``."""
        now = now or datetime.now(timezone.utc)
        local = now.astimezone(BANGKOK_TZ)
        return cls(
            event_id=event_id,
            date=local.strftime("%Y-%m-%d"),
            time=local.strftime("%H:%M:%S"),
            state=TransactionState.NEW.value,
            retries_count=0,
            timestamp=int(now.timestamp() * 1000),
            parameters=parameters.to_dict(),
            type=WORK_ITEM_TYPE,
        )

    @property
    def created_at(self) -> str:
        return f"{self.date} {self.time}"

    def to_record(self) -> Dict[str, Any]:
        """Serialize with on-store field names."""
        return self.model_dump(by_alias=True)


# =============================================================================
# SERVICE RESULTS
# =============================================================================

class SubmissionReceipt(BaseModel):
    """Acknowledgment returned once an item is durably queued."""
    event_id: str
    status_url: str
    message: str = "Transaction accepted for processing."


class StatusView(BaseModel):
    """Caller-facing status of a work item."""
    id: str
    status: ExternalStatus
    state: str
    message: str
    created_at: str
    http_status: int = Field(default=200, exclude=True)
