"""Daily retention job.

Categories (each runs independently; one failing never stops the rest):
    low_relevance: articles published > 30 days ago, score < 0.3, no posts
    stale: articles published > 90 days ago, any score, no posts
    failed_posts: FAILED posts created > 7 days ago
    optimize: refresh SQLite planner statistics (ANALYZE)

Articles referenced by any post are never deleted.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from database import Database

logger = logging.getLogger(__name__)

LOW_RELEVANCE_AGE = timedelta(days=30)
LOW_RELEVANCE_MAX_SCORE = 0.3
STALE_AGE = timedelta(days=90)
FAILED_POST_AGE = timedelta(days=7)


@dataclass
class RetentionReport:
    """Rows deleted per category, plus the categories that errored."""

    low_relevance: int = 0
    stale: int = 0
    failed_posts: int = 0
    optimized: bool = False
    errors: dict[str, str] = field(default_factory=dict)
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "low_relevance": self.low_relevance,
            "stale": self.stale,
            "failed_posts": self.failed_posts,
            "optimized": self.optimized,
            "errors": self.errors,
            "duration": round(self.duration, 2),
        }


class RetentionJanitor:
    """Purges low-value and stale data from the store."""

    def __init__(self, db: Database):
        self.db = db

    def _step(self, report: RetentionReport, name: str, action: Callable[[], Any]) -> Any:
        try:
            return action()
        except Exception as e:
            report.errors[name] = f"{type(e).__name__}: {e}"
            logger.error("Retention step failed | step=%s error=%s", name, e, exc_info=True)
            return None

    def run(self, now: datetime | None = None) -> RetentionReport:
        """Run every retention category once."""
        start = time.time()
        now = now or datetime.now(timezone.utc)
        report = RetentionReport()

        deleted = self._step(
            report,
            "low_relevance",
            lambda: self.db.delete_low_relevance_articles(now - LOW_RELEVANCE_AGE, LOW_RELEVANCE_MAX_SCORE),
        )
        report.low_relevance = deleted or 0

        deleted = self._step(report, "stale", lambda: self.db.delete_stale_articles(now - STALE_AGE))
        report.stale = deleted or 0

        deleted = self._step(report, "failed_posts", lambda: self.db.delete_failed_posts(now - FAILED_POST_AGE))
        report.failed_posts = deleted or 0

        self._step(report, "optimize", self.db.optimize)
        report.optimized = "optimize" not in report.errors

        report.duration = time.time() - start
        logger.info(
            "Retention done | low_relevance=%d stale=%d failed_posts=%d errors=%d",
            report.low_relevance, report.stale, report.failed_posts, len(report.errors),
        )
        return report
