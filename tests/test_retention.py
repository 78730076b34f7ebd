import sqlite3
from datetime import datetime, timedelta, timezone

from models.post import PostData, PostStatus
from retention import RetentionJanitor

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


def _post(profile, account_id, article_id=None):
    return PostData(
        user_id=profile.user_id,
        brand_profile_id=profile.id,
        social_account_id=account_id,
        article_id=article_id,
        content="Queued",
        status=PostStatus.SCHEDULED,
        scheduled_for=NOW + timedelta(days=1),
    )


def test_retention_categories(db, make_profile, make_source, make_article, account_of):
    profile = make_profile()
    account = account_of(profile)
    source = make_source(profile)

    weak_old = make_article(source, score=0.1, age=timedelta(days=40))
    weak_used = make_article(source, score=0.1, age=timedelta(days=40))
    strong_old = make_article(source, score=0.6, age=timedelta(days=40))
    weak_recent = make_article(source, score=0.1, age=timedelta(days=10))
    ancient = make_article(source, score=0.9, age=timedelta(days=100))
    db.create_post(_post(profile, account.id, article_id=weak_used.id), NOW)

    old_failure = db.create_post(_post(profile, account.id), NOW - timedelta(days=10))
    db.update_post_status(old_failure.id, PostStatus.FAILED, NOW)
    new_failure = db.create_post(_post(profile, account.id), NOW - timedelta(days=1))
    db.update_post_status(new_failure.id, PostStatus.FAILED, NOW)

    report = RetentionJanitor(db).run(now=NOW)

    assert report.ok
    assert report.low_relevance == 1
    assert report.stale == 1
    assert report.failed_posts == 1
    assert report.optimized
    assert db.get_article(weak_old.id) is None
    assert db.get_article(ancient.id) is None
    for kept in (weak_used, strong_old, weak_recent):
        assert db.get_article(kept.id) is not None
    assert db.get_post(old_failure.id) is None
    assert db.get_post(new_failure.id) is not None


def test_referenced_article_survives_stale_window(db, make_profile, make_source, make_article, account_of):
    profile = make_profile()
    article = make_article(make_source(profile), score=0.05, age=timedelta(days=200))
    db.create_post(_post(profile, account_of(profile).id, article_id=article.id), NOW)

    report = RetentionJanitor(db).run(now=NOW)
    assert report.low_relevance == 0
    assert report.stale == 0
    assert db.get_article(article.id) is not None


def test_failing_category_does_not_stop_the_rest(db, make_profile, make_source, make_article, account_of, monkeypatch):
    profile = make_profile()
    make_article(make_source(profile), score=0.1, age=timedelta(days=40))
    failure = db.create_post(_post(profile, account_of(profile).id), NOW - timedelta(days=10))
    db.update_post_status(failure.id, PostStatus.FAILED, NOW)

    def locked(cutoff):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(db, "delete_stale_articles", locked)
    report = RetentionJanitor(db).run(now=NOW)

    assert not report.ok
    assert "database is locked" in report.errors["stale"]
    assert report.low_relevance == 1
    assert report.failed_posts == 1
    assert report.optimized
    assert report.to_dict()["errors"] == report.errors
