"""Core data models for the ERP sync queue."""

from core.models.work_item import (
    BANGKOK_TZ,
    QUEUE_NAME,
    TERMINAL_STATES,
    WORK_ITEM_TYPE,
    ExternalStatus,
    StatusView,
    SubmissionReceipt,
    SyncParameters,
    TransactionState,
    WorkItem,
)

__all__ = [
    "BANGKOK_TZ",
    "QUEUE_NAME",
    "TERMINAL_STATES",
    "WORK_ITEM_TYPE",
    "ExternalStatus",
    "StatusView",
    "SubmissionReceipt",
    "SyncParameters",
    "TransactionState",
    "WorkItem",
]
