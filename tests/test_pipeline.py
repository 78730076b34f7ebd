import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from errors import FetchError
from models.feed import RawItem
from pipeline import FeedScheduler, IngestionPipeline

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeFetcher:
    """Serves canned items (or raises) per feed URL."""

    def __init__(self, feeds):
        self.feeds = feeds
        self.calls = []

    async def fetch(self, url, session=None):
        self.calls.append(url)
        outcome = self.feeds[url]
        if isinstance(outcome, Exception):
            raise outcome
        return list(outcome)


def _relevant(n: int) -> RawItem:
    return RawItem(
        title=f"AI startup story {n}",
        link=f"https://news.example.com/story-{n}",
        snippet="The ai startup raised a seed round.",
    )


IRRELEVANT = RawItem(title="Weather report", link="https://news.example.com/weather", snippet="Sunny all week")


def test_reingesting_unchanged_feed_stores_nothing_new(db, make_profile, make_source):
    source = make_source(make_profile())
    fetcher = FakeFetcher({source.url: [_relevant(1), _relevant(2), IRRELEVANT]})
    pipeline = IngestionPipeline(db, fetcher)

    first = asyncio.run(pipeline.process_source(source.id, now=NOW))
    assert first.status == "ok"
    assert first.found == 3
    assert first.stored == 2
    assert first.below_threshold == 1

    second = asyncio.run(pipeline.process_source(source.id, now=NOW + timedelta(hours=1)))
    assert second.stored == 0
    assert second.duplicates == 2
    assert db.count_articles() == 2


def test_success_rewards_reliability(db, make_profile, make_source):
    source = make_source(make_profile())
    pipeline = IngestionPipeline(db, FakeFetcher({source.url: []}))

    result = asyncio.run(pipeline.process_source(source.id, now=NOW))
    assert result.reliability == pytest.approx(0.51)
    stored = db.get_source(source.id)
    assert stored.reliability == pytest.approx(0.51)
    assert stored.last_checked == NOW


def test_fetch_failure_penalizes_and_returns_zero(db, make_profile, make_source):
    source = make_source(make_profile())
    fetcher = FakeFetcher({source.url: FetchError(source.url, "HTTP 500")})
    pipeline = IngestionPipeline(db, fetcher)

    result = asyncio.run(pipeline.process_source(source.id, now=NOW))
    assert result.status == "failed"
    assert result.stored == 0
    assert result.error == "HTTP 500"
    stored = db.get_source(source.id)
    assert stored.reliability == pytest.approx(0.45)
    assert stored.last_checked == NOW


def test_five_consecutive_fetch_failures(db, make_profile, make_source):
    source = make_source(make_profile())
    fetcher = FakeFetcher({source.url: FetchError(source.url, "timed out")})
    pipeline = IngestionPipeline(db, fetcher)

    for attempt in range(5):
        asyncio.run(pipeline.process_source(source.id, now=NOW + timedelta(hours=attempt)))

    assert db.get_source(source.id).reliability == pytest.approx(0.25)


def test_bad_item_does_not_abort_batch(db, make_profile, make_source):
    source = make_source(make_profile())
    broken = RawItem.model_construct(title="Broken", link=12345)
    linkless = RawItem(title="AI startup without link", snippet="ai startup")
    fetcher = FakeFetcher({source.url: [_relevant(1), broken, linkless, _relevant(2)]})

    result = asyncio.run(IngestionPipeline(db, fetcher).process_source(source.id, now=NOW))
    assert result.status == "ok"
    assert result.stored == 2
    assert result.item_errors == 1
    assert result.missing_link == 1


def test_excluded_keyword_blocks_storage(db, make_profile, make_source):
    source = make_source(make_profile(keywords=("ai", "startup"), excluded=("crypto",)))
    item = RawItem(
        title="AI startup pivots",
        link="https://news.example.com/pivot",
        snippet="The ai startup now sells crypto",
    )
    result = asyncio.run(IngestionPipeline(db, FakeFetcher({source.url: [item]})).process_source(source.id, now=NOW))
    assert result.stored == 0
    assert result.below_threshold == 1


def test_articles_at_threshold_are_not_stored(db, make_profile, make_source):
    # "ai" counted three times over five keywords: 3 / 15 == 0.2
    source = make_source(make_profile(keywords=("ai", "ml", "data", "cloud", "edge")))
    item = RawItem(title="ai", link="https://news.example.com/t", snippet="ai")
    result = asyncio.run(IngestionPipeline(db, FakeFetcher({source.url: [item]})).process_source(source.id, now=NOW))
    assert result.stored == 0


def test_missing_and_inactive_sources_are_skipped(db, make_profile, make_source):
    inactive = make_source(make_profile(), is_active=False)
    fetcher = FakeFetcher({})
    pipeline = IngestionPipeline(db, fetcher)

    assert asyncio.run(pipeline.process_source("missing")).status == "skipped"
    result = asyncio.run(pipeline.process_source(inactive.id))
    assert result.status == "skipped"
    assert result.stored == 0
    assert fetcher.calls == []


def test_tick_isolates_unexpected_source_errors(db, make_profile, make_source):
    profile = make_profile()
    good = make_source(profile, reliability=0.9)
    exploding = make_source(profile, reliability=0.8)
    failing = make_source(profile, reliability=0.7)
    fetcher = FakeFetcher({
        good.url: [_relevant(1)],
        exploding.url: RuntimeError("parser bug"),
        failing.url: FetchError(failing.url, "HTTP 404"),
    })
    scheduler = FeedScheduler(db, IngestionPipeline(db, fetcher), batch_size=10)

    tick = asyncio.run(scheduler.tick(now=NOW))
    by_id = {r.source_id: r for r in tick.sources}

    assert len(tick.sources) == 3
    assert by_id[good.id].stored == 1
    assert by_id[exploding.id].status == "failed"
    assert "parser bug" in by_id[exploding.id].error
    assert db.get_source(exploding.id).reliability == pytest.approx(0.75)
    assert db.get_source(exploding.id).last_checked == NOW
    assert by_id[failing.id].status == "failed"
    assert tick.stored == 1
    assert tick.failed == 2
    assert tick.to_dict()["processed"] == 1


def test_tick_respects_batch_size_and_refresh(db, make_profile, make_source):
    profile = make_profile()
    sources = [make_source(profile) for _ in range(3)]
    fetcher = FakeFetcher({s.url: [] for s in sources})
    scheduler = FeedScheduler(db, IngestionPipeline(db, fetcher), batch_size=2)

    first = asyncio.run(scheduler.tick(now=NOW))
    assert len(first.sources) == 2

    second = asyncio.run(scheduler.tick(now=NOW + timedelta(minutes=1)))
    assert len(second.sources) == 1

    third = asyncio.run(scheduler.tick(now=NOW + timedelta(minutes=2)))
    assert third.sources == []


def test_unexpected_fetch_error_penalizes_source_and_stamps_check(db, make_profile, make_source):
    source = make_source(make_profile())
    fetcher = FakeFetcher({source.url: AttributeError("'int' object has no attribute 'strip'")})
    scheduler = FeedScheduler(db, IngestionPipeline(db, fetcher), batch_size=10)

    tick = asyncio.run(scheduler.tick(now=NOW))
    assert tick.failed == 1
    assert tick.sources[0].error.startswith("AttributeError")
    stored = db.get_source(source.id)
    assert stored.reliability == pytest.approx(0.45)
    assert stored.last_checked == NOW

    again = asyncio.run(scheduler.tick(now=NOW + timedelta(minutes=1)))
    assert again.sources == []
