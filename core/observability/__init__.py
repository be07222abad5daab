"""
Observability Module for the Sync Portal

Provides:
- Structured logging with correlation IDs
- In-process metrics (submissions, lookups, store latency)
"""

from core.observability.logging import (
    CorrelationContext,
    configure_logging,
    get_logger,
    with_correlation,
)

from core.observability.metrics import (
    MetricsCollector,
    get_metrics,
)

__all__ = [
    # Logging
    "CorrelationContext",
    "configure_logging",
    "get_logger",
    "with_correlation",
    # Metrics
    "MetricsCollector",
    "get_metrics",
]
