from datetime import datetime, timedelta, timezone

import pytest

from errors import PersistenceConflict, PostStateError
from models.feed import NormalizedArticle
from models.post import PostData, PostStatus
from models.profile import Platform, SubscriptionTier

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


def _post(profile, account_id, article_id=None, status=PostStatus.SCHEDULED, when=NOW + timedelta(days=1)):
    return PostData(
        user_id=profile.user_id,
        brand_profile_id=profile.id,
        social_account_id=account_id,
        article_id=article_id,
        content="Hello",
        status=status,
        scheduled_for=when,
    )


def test_due_sources_order_and_filter(db, make_profile, make_source):
    profile = make_profile()
    refresh = timedelta(minutes=30)
    trusted_old = make_source(profile, reliability=0.9, last_checked=NOW - timedelta(hours=5))
    trusted_never = make_source(profile, reliability=0.9)
    trusted_recent = make_source(profile, reliability=0.9, last_checked=NOW - timedelta(hours=1))
    weak = make_source(profile, reliability=0.2)
    make_source(profile, reliability=1.0, last_checked=NOW - timedelta(minutes=5))
    make_source(profile, reliability=1.0, is_active=False)

    due = db.find_due_sources(10, refresh, NOW)
    assert [s.id for s in due] == [trusted_never.id, trusted_old.id, trusted_recent.id, weak.id]

    assert len(db.find_due_sources(2, refresh, NOW)) == 2


def test_duplicate_url_hash_conflicts(db, make_profile, make_source, make_article):
    source = make_source(make_profile())
    article = make_article(source, url="https://e.com/same")
    assert db.find_by_url_hash(article.url_hash).id == article.id

    duplicate = NormalizedArticle(**article.model_dump(include=set(NormalizedArticle.model_fields)))
    with pytest.raises(PersistenceConflict):
        db.create_article(source.id, duplicate, 0.9, NOW)
    assert db.count_articles() == 1


def test_article_round_trip(db, make_profile, make_source, make_article):
    source = make_source(make_profile(), name="Daily AI")
    article = make_article(source, score=0.75, image_url="https://img/x.png", tags=("AI", "Seed"))

    stored = db.get_article(article.id)
    assert stored.relevance_score == 0.75
    assert stored.tags == ["AI", "Seed"]
    assert stored.image_url == "https://img/x.png"
    assert stored.source_name == "Daily AI"
    assert stored.published_at == article.published_at


def test_deleting_source_cascades_articles(db, make_profile, make_source, make_article):
    source = make_source(make_profile())
    make_article(source)
    make_article(source)
    assert db.count_articles(source.id) == 2

    assert db.delete_source(source.id)
    assert db.count_articles() == 0


def test_unused_high_relevance_articles(db, make_profile, make_source, make_article, account_of):
    profile = make_profile()
    other = make_profile()
    source = make_source(profile)
    best = make_article(source, score=0.9)
    newer = make_article(source, score=0.6, age=timedelta(hours=1))
    older = make_article(source, score=0.6, age=timedelta(hours=10))
    used = make_article(source, score=0.95)
    make_article(source, score=0.4)
    make_article(make_source(other), score=0.99)

    account = account_of(profile)
    db.create_post(_post(profile, account.id, article_id=used.id), NOW)

    found = db.find_unused_high_relevance_articles(profile.id, 0.5, 10)
    assert [a.id for a in found] == [best.id, newer.id, older.id]
    assert len(db.find_unused_high_relevance_articles(profile.id, 0.5, 1)) == 1
    assert db.find_unused_high_relevance_articles(profile.id, 0.5, 0) == []


def test_eligible_profiles(db, make_profile):
    paid = make_profile(tier=SubscriptionTier.BUSINESS, accounts=(Platform.LINKEDIN, Platform.TWITTER))
    make_profile(tier=SubscriptionTier.FREE)
    make_profile(tier=SubscriptionTier.ENTERPRISE, accounts=(), inactive_accounts=(Platform.TWITTER,))

    eligible = db.eligible_profiles()
    assert [e.profile.id for e in eligible] == [paid.id]
    assert eligible[0].limit == 10
    assert eligible[0].accounts[0].platform is Platform.LINKEDIN


def test_count_future_scheduled(db, make_profile):
    profile = make_profile()
    account_id = db.eligible_profiles()[0].accounts[0].id
    db.create_post(_post(profile, account_id), NOW)
    db.create_post(_post(profile, account_id, when=NOW - timedelta(hours=1)), NOW)
    db.create_post(_post(profile, account_id, status=PostStatus.DRAFT), NOW)

    assert db.count_future_scheduled(profile.id, NOW) == 1


def test_post_lifecycle(db, make_profile):
    profile = make_profile()
    account_id = db.eligible_profiles()[0].accounts[0].id

    draft = db.create_post(_post(profile, account_id, status=PostStatus.DRAFT), NOW)
    with pytest.raises(PostStateError):
        db.update_post_status(draft.id, PostStatus.PUBLISHED, NOW)
    scheduled = db.update_post_status(draft.id, PostStatus.SCHEDULED, NOW)
    assert scheduled.status is PostStatus.SCHEDULED

    published = db.update_post_status(
        draft.id, PostStatus.PUBLISHED, NOW, published_at=NOW, platform_post_id="tw-1"
    )
    assert published.status is PostStatus.PUBLISHED
    assert published.platform_post_id == "tw-1"
    assert published.published_at == NOW

    with pytest.raises(PostStateError):
        db.update_post_status(draft.id, PostStatus.FAILED, NOW)
    with pytest.raises(PostStateError):
        db.delete_post(draft.id)


def test_delete_draft_and_scheduled_posts(db, make_profile):
    profile = make_profile()
    account_id = db.eligible_profiles()[0].accounts[0].id
    draft = db.create_post(_post(profile, account_id, status=PostStatus.DRAFT), NOW)
    scheduled = db.create_post(_post(profile, account_id), NOW)

    db.delete_post(draft.id)
    db.delete_post(scheduled.id)
    assert db.get_post(draft.id) is None
    assert db.get_post(scheduled.id) is None


def test_latest_articles_skips_inactive_sources(db, make_profile, make_source, make_article):
    profile = make_profile()
    active = make_source(profile)
    inactive = make_source(profile, is_active=False)
    keep = make_article(active, score=0.5)
    make_article(active, score=0.2)
    make_article(inactive, score=0.9)

    assert [a.id for a in db.latest_articles(profile.id)] == [keep.id]


def test_stats_counts(db, make_profile, make_source, make_article):
    make_article(make_source(make_profile()))
    stats = db.stats()
    assert stats["articles"] == 1
    assert stats["news_sources"] == 1
    assert stats["posts_scheduled"] == 0
