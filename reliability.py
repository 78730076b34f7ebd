"""Per-source reliability tracking.

Every ingestion attempt moves a source's reliability: +0.01 on success,
-0.05 on failure, clamped to [0, 1]. The asymmetric steps demote failing
sources quickly and promote healthy ones slowly. Both outcomes also stamp
last_checked, so a failing source leaves the due set instead of being
retried on every tick.

Read-modify-write: the record loaded at the start of a processing attempt
is carried through the whole call. The new value is computed from that
snapshot and written back as an absolute value; the store is not re-read.
Concurrent attempts on the same source may lose an update, which is
acceptable for an approximate trust metric.
"""

import logging
from datetime import datetime, timezone

from models.source import NewsSource

logger = logging.getLogger(__name__)

SUCCESS_STEP = 0.01
FAILURE_STEP = 0.05


def _clamp(value: float) -> float:
    # Rounding keeps repeated 0.01/0.05 steps from drifting (0.45000000000000007)
    return round(min(1.0, max(0.0, value)), 4)


def next_reliability(current: float, success: bool) -> float:
    """Reliability after one attempt."""
    step = SUCCESS_STEP if success else -FAILURE_STEP
    return _clamp(current + step)


class SourceReliabilityTracker:
    """Applies reliability adjustments and persists them.

    Args:
        store: Persistence object exposing update_source_check(id, reliability, checked_at)
    """

    def __init__(self, store):
        self.store = store

    def _record(self, source: NewsSource, success: bool, now: datetime | None) -> NewsSource:
        checked_at = now or datetime.now(timezone.utc)
        reliability = next_reliability(source.reliability, success)
        self.store.update_source_check(source.id, reliability, checked_at)
        logger.debug(
            "Reliability updated | source=%s success=%s %.2f -> %.2f",
            source.id, success, source.reliability, reliability,
        )
        return source.model_copy(update={"reliability": reliability, "last_checked": checked_at})

    def on_success(self, source: NewsSource, now: datetime | None = None) -> NewsSource:
        """Reward a successful attempt. Returns the updated snapshot."""
        return self._record(source, True, now)

    def on_failure(self, source: NewsSource, now: datetime | None = None) -> NewsSource:
        """Penalize a failed attempt. Returns the updated snapshot."""
        return self._record(source, False, now)
