"""Feed ingestion orchestration.

This module coordinates the ingestion workflow for news sources:

Per-source Flow (IngestionPipeline.process_source):
    1. LOAD: Read the source; missing or inactive sources are skipped
    2. FETCH: Retrieve and parse the feed (FeedFetcher)
    3. NORMALIZE: RawItem -> NormalizedArticle; linkless items dropped
    4. DEDUP: Skip items whose url_hash is already stored
    5. SCORE: Keyword relevance against the owning brand profile
    6. SAVE: Persist only items scoring above the admission threshold
    7. RELIABILITY: Reward the source on success, penalize on fetch failure

Tick Flow (FeedScheduler.tick):
    1. SELECT: Due sources ordered by reliability, then staleness
    2. PROCESS: All selected sources concurrently, one shared HTTP session
    3. REPORT: Aggregate counts logged and returned as FeedTickResult

Error Handling Strategy:
    - FetchError (or any other error raised while fetching) costs the source
      reliability, stamps last_checked and ends that source's attempt
    - ItemProcessingError (or anything else raised for one item) skips the item
    - PersistenceConflict is a benign duplicate
    - An unexpected exception for one source becomes a 'failed' SourceResult;
      the other sources in the tick are unaffected
"""

import asyncio
import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import aiohttp

from config import Config
from database import Database
from errors import FetchError, PersistenceConflict
from feeds import FeedFetcher
from models.source import NewsSource
from normalize import normalize
from reliability import SourceReliabilityTracker
from scoring import score

logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"


@dataclass
class SourceResult:
    """Outcome of one ingestion attempt for one source.

    Attributes:
        source_id: Source processed
        status: 'ok', 'failed' (fetch or unexpected error) or 'skipped'
        found: Items in the fetched feed
        stored: Articles newly persisted
        duplicates: Items already stored (including insert races)
        below_threshold: Items scoring at or under the admission threshold
        missing_link: Items dropped for having no link
        item_errors: Items skipped because processing raised
        reliability: Source reliability after the attempt (None if untouched)
        error: Failure reason for 'failed' / 'skipped'
        duration: Wall time in seconds
    """

    source_id: str
    status: str = STATUS_OK
    found: int = 0
    stored: int = 0
    duplicates: int = 0
    below_threshold: int = 0
    missing_link: int = 0
    item_errors: int = 0
    reliability: float | None = None
    error: str = ""
    duration: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        d = asdict(self)
        d["duration"] = round(d["duration"], 2)
        return d


@dataclass
class FeedTickResult:
    """Outcome of one feed tick across all selected sources."""

    sources: list[SourceResult] = field(default_factory=list)
    duration: float = 0.0

    @property
    def processed(self) -> int:
        return sum(1 for r in self.sources if r.status == STATUS_OK)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.sources if r.status == STATUS_FAILED)

    @property
    def stored(self) -> int:
        return sum(r.stored for r in self.sources)

    def to_dict(self) -> dict[str, Any]:
        return {
            "selected": len(self.sources),
            "processed": self.processed,
            "failed": self.failed,
            "stored": self.stored,
            "duration": round(self.duration, 2),
            "sources": [r.to_dict() for r in self.sources],
        }


class IngestionPipeline:
    """Fetch, normalize, score and store the articles of one source.

    Args:
        db: Persistence store
        fetcher: Object with an async fetch(url, session=None) -> list[RawItem]
        min_score: Admission threshold; articles must score strictly above it
    """

    def __init__(
        self,
        db: Database,
        fetcher: FeedFetcher,
        min_score: float = 0.2,
    ):
        self.db = db
        self.fetcher = fetcher
        self.min_score = min_score
        self.reliability = SourceReliabilityTracker(db)

    async def process_source(
        self,
        source_id: str,
        session: aiohttp.ClientSession | None = None,
        now: datetime | None = None,
    ) -> SourceResult:
        """Run one ingestion attempt for a source.

        The source record loaded here is the snapshot used for the
        reliability update at the end of the attempt.

        Args:
            source_id: Source to process
            session: Shared HTTP session for the tick, if any
            now: Attempt time (defaults to the current UTC time)

        Returns:
            SourceResult; result.stored is the count of new articles
        """
        start = time.time()
        now = now or datetime.now(timezone.utc)
        result = SourceResult(source_id=source_id)

        source = self.db.get_source(source_id)
        if source is None or not source.is_active:
            result.status = STATUS_SKIPPED
            result.error = "source not found" if source is None else "source inactive"
            logger.debug("Source skipped | source=%s reason=%s", source_id, result.error)
            return result

        try:
            items = await self.fetcher.fetch(source.url, session=session)
        except Exception as e:
            reason = e.reason if isinstance(e, FetchError) else f"{type(e).__name__}: {e}"
            source = self.reliability.on_failure(source, now)
            result.status = STATUS_FAILED
            result.error = reason
            result.reliability = source.reliability
            result.duration = time.time() - start
            logger.warning(
                "Feed fetch failed | source=%s url=%s reason=%s reliability=%.2f",
                source.id, source.url, reason, source.reliability,
            )
            return result

        result.found = len(items)
        profile = self.db.get_profile(source.brand_profile_id)
        keywords = profile.keywords if profile else []
        excluded = profile.excluded_keywords if profile else []

        for item in items:
            try:
                self._ingest_item(item, source, keywords, excluded, now, result)
            except Exception as e:
                result.item_errors += 1
                logger.warning(
                    "Item skipped | source=%s link=%r error=%s",
                    source.id, getattr(item, "link", None), e,
                )

        source = self.reliability.on_success(source, now)
        result.reliability = source.reliability
        result.duration = time.time() - start
        logger.info(
            "Source processed | source=%s found=%d stored=%d dup=%d low=%d errors=%d",
            source.id, result.found, result.stored, result.duplicates,
            result.below_threshold, result.item_errors,
        )
        return result

    def _ingest_item(
        self,
        item,
        source: NewsSource,
        keywords: list[str],
        excluded: list[str],
        now: datetime,
        result: SourceResult,
    ) -> None:
        article = normalize(item, source, now)
        if article is None:
            result.missing_link += 1
            return

        if self.db.find_by_url_hash(article.url_hash) is not None:
            result.duplicates += 1
            return

        relevance = score(article, keywords, excluded)
        if relevance <= self.min_score:
            result.below_threshold += 1
            return

        try:
            self.db.create_article(source.id, article, relevance, now)
        except PersistenceConflict:
            result.duplicates += 1
            return
        result.stored += 1


class FeedScheduler:
    """Selects due sources and ingests them concurrently.

    Example:
        >>> scheduler = FeedScheduler.from_config(config, db)
        >>> result = await scheduler.tick()
        >>> result.stored
        12
    """

    def __init__(
        self,
        db: Database,
        pipeline: IngestionPipeline,
        batch_size: int = 10,
        refresh_interval: timedelta = timedelta(minutes=30),
    ):
        self.db = db
        self.pipeline = pipeline
        self.batch_size = batch_size
        self.refresh_interval = refresh_interval

    @classmethod
    def from_config(cls, config: Config, db: Database) -> "FeedScheduler":
        fetcher = FeedFetcher(timeout=config.feed_timeout_seconds, user_agent=config.feed_user_agent)
        pipeline = IngestionPipeline(db, fetcher, min_score=config.min_ingest_score)
        return cls(
            db,
            pipeline,
            batch_size=config.feed_batch_size,
            refresh_interval=timedelta(minutes=config.feed_refresh_minutes),
        )

    async def tick(self, now: datetime | None = None) -> FeedTickResult:
        """Process up to batch_size due sources.

        Never raises for a single source; each source's outcome is
        captured independently.
        """
        start = time.time()
        now = now or datetime.now(timezone.utc)
        sources = self.db.find_due_sources(self.batch_size, self.refresh_interval, now)

        if not sources:
            logger.info("Feed tick | no sources due")
            return FeedTickResult(duration=time.time() - start)

        logger.info("Feed tick started | due=%d", len(sources))
        semaphore = asyncio.Semaphore(max(1, self.batch_size))

        async with aiohttp.ClientSession() as session:

            async def run(source: NewsSource) -> SourceResult:
                async with semaphore:
                    return await self.pipeline.process_source(source.id, session=session, now=now)

            outcomes = await asyncio.gather(*(run(s) for s in sources), return_exceptions=True)

        results = []
        for source, outcome in zip(sources, outcomes):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                logger.error(
                    "Source failed | source=%s type=%s error=%s",
                    source.id, type(outcome).__name__, outcome,
                    exc_info=outcome,
                )
                outcome = SourceResult(source_id=source.id, status=STATUS_FAILED, error=str(outcome))
            results.append(outcome)

        tick = FeedTickResult(sources=results, duration=time.time() - start)
        logger.info(
            "Feed tick done | processed=%d failed=%d stored=%d duration=%.1fs",
            tick.processed, tick.failed, tick.stored, tick.duration,
        )
        return tick
