"""
Metrics Collection for the Sync Portal

Collects and exposes metrics for:
- Submissions (accepted, rejected, failed)
- Status lookups (by external status, not found, errors)
- Queue store call latency (average, p95) per operation

Metrics are kept in memory for the life of the process.
"""

import statistics
from collections import defaultdict
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, List, Optional


# Bucket for accepted submissions whose table is not tracked individually
OTHER_TABLES = "other"

# =============================================================================
# Metric Data Classes
# =============================================================================

@dataclass
class SubmissionMetrics:
    """Counters for POST /Sync outcomes."""
    accepted: int = 0
    rejected: int = 0
    failed: int = 0

    max_tables: int = 100

    # Accepted submissions by target table; tables past max_tables share one bucket
    by_table: Dict[str, int] = field(default_factory=lambda: defaultdict(int))

    def add_table(self, table_name: str):
        if table_name not in self.by_table and len(self.by_table) >= self.max_tables:
            table_name = OTHER_TABLES
        self.by_table[table_name] += 1


@dataclass
class LookupMetrics:
    """Counters for status lookups."""
    found: int = 0
    not_found: int = 0
    errors: int = 0

    # Found lookups by external status
    by_status: Dict[str, int] = field(default_factory=lambda: defaultdict(int))


@dataclass
class TimingMetrics:
    """Store call time metrics."""
    max_samples: int = 1000

    # By operation ("store.append", "store.find")
    by_stage: Dict[str, List[float]] = field(default_factory=lambda: defaultdict(list))

    def add_sample(self, duration_ms: float, stage: str):
        """Add a timing sample."""
        samples = self.by_stage[stage]
        samples.append(duration_ms)
        if len(samples) > self.max_samples:
            self.by_stage[stage] = samples[-self.max_samples:]

    def get_average(self, stage: str) -> float:
        samples = self.by_stage.get(stage, [])
        return statistics.mean(samples) if samples else 0.0

    def get_p95(self, stage: str) -> float:
        """Get 95th percentile time."""
        samples = self.by_stage.get(stage, [])
        if not samples:
            return 0.0
        sorted_samples = sorted(samples)
        idx = int(len(sorted_samples) * 0.95)
        return sorted_samples[min(idx, len(sorted_samples) - 1)]


# =============================================================================
# Metrics Collector (Singleton)
# =============================================================================

class MetricsCollector:
    """
    Thread-safe metrics collector for the portal.

    Usage:
        metrics = MetricsCollector.instance()
        metrics.record_submission_accepted("orders")
        metrics.record_store_call("store.append", duration_ms=12.5)
    """

    _instance: Optional["MetricsCollector"] = None
    _instance_lock = Lock()

    def __init__(self):
        self.submissions = SubmissionMetrics()
        self.lookups = LookupMetrics()
        self.timings = TimingMetrics()
        self._lock = Lock()

    @classmethod
    def instance(cls) -> "MetricsCollector":
        """Get singleton instance."""
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    # =========================================================================
    # Submissions
    # =========================================================================

    def record_submission_accepted(self, table_name: str):
        with self._lock:
            self.submissions.accepted += 1
            self.submissions.add_table(table_name)

    def record_submission_rejected(self):
        with self._lock:
            self.submissions.rejected += 1

    def record_submission_failed(self):
        with self._lock:
            self.submissions.failed += 1

    # =========================================================================
    # Lookups
    # =========================================================================

    def record_lookup_found(self, status: str):
        with self._lock:
            self.lookups.found += 1
            self.lookups.by_status[status] += 1

    def record_lookup_not_found(self):
        with self._lock:
            self.lookups.not_found += 1

    def record_lookup_error(self):
        with self._lock:
            self.lookups.errors += 1

    # =========================================================================
    # Timing
    # =========================================================================

    def record_store_call(self, stage: str, duration_ms: float):
        """Record the duration of one store call."""
        with self._lock:
            self.timings.add_sample(duration_ms, stage)

    def get_timing_stats(self, stage: str) -> Dict[str, float]:
        """Get timing statistics for a stage."""
        with self._lock:
            return {
                "average_ms": self.timings.get_average(stage),
                "p95_ms": self.timings.get_p95(stage),
                "sample_count": len(self.timings.by_stage.get(stage, [])),
            }

    # =========================================================================
    # Summary
    # =========================================================================

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        with self._lock:
            return {
                "submissions": {
                    "accepted": self.submissions.accepted,
                    "rejected": self.submissions.rejected,
                    "failed": self.submissions.failed,
                    "by_table": dict(self.submissions.by_table),
                },
                "lookups": {
                    "found": self.lookups.found,
                    "not_found": self.lookups.not_found,
                    "errors": self.lookups.errors,
                    "by_status": dict(self.lookups.by_status),
                },
                "timings": {
                    stage: {
                        "average_ms": self.timings.get_average(stage),
                        "p95_ms": self.timings.get_p95(stage),
                        "sample_count": len(samples),
                    }
                    for stage, samples in self.timings.by_stage.items()
                },
            }


# =============================================================================
# Module-level convenience functions
# =============================================================================

def get_metrics() -> MetricsCollector:
    """Get the global metrics collector."""
    return MetricsCollector.instance()
