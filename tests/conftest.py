import logging
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from database import Database
from models.feed import NormalizedArticle
from models.profile import (
    BrandProfile,
    Platform,
    SocialAccount,
    SubscriptionTier,
    User,
    VoiceTone,
)
from models.source import NewsSource
from normalize import url_hash
from observability.logging import clear_context

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "curator.db")
    yield database
    database.close()


@pytest.fixture
def make_profile(db):
    def _make(
        tier=SubscriptionTier.PROFESSIONAL,
        keywords=("ai", "startup"),
        excluded=(),
        accounts=(Platform.TWITTER,),
        inactive_accounts=(),
        tone=VoiceTone.PROFESSIONAL,
        industry="Technology",
        niche="Machine Learning",
    ) -> BrandProfile:
        user = db.upsert_user(User(id=uuid.uuid4().hex, email="owner@example.com", subscription_tier=tier))
        for platform in accounts:
            db.create_social_account(
                SocialAccount(id=uuid.uuid4().hex, user_id=user.id, platform=platform, username="brand")
            )
        for platform in inactive_accounts:
            db.create_social_account(
                SocialAccount(
                    id=uuid.uuid4().hex, user_id=user.id, platform=platform, username="old", is_active=False
                )
            )
        return db.create_profile(
            BrandProfile(
                id=uuid.uuid4().hex,
                user_id=user.id,
                name="Acme",
                industry=industry,
                niche=niche,
                keywords=list(keywords),
                excluded_keywords=list(excluded),
                voice_tone=tone,
            )
        )

    return _make


@pytest.fixture
def make_source(db):
    def _make(profile: BrandProfile, url: str | None = None, **fields) -> NewsSource:
        source_id = uuid.uuid4().hex
        return db.create_source(
            NewsSource(
                id=source_id,
                brand_profile_id=profile.id,
                name=fields.pop("name", "Example News"),
                url=url or f"https://news.example.com/{source_id}/feed.xml",
                **fields,
            )
        )

    return _make


@pytest.fixture
def make_article(db):
    def _make(
        source: NewsSource,
        score: float = 0.8,
        age: timedelta = timedelta(hours=2),
        url: str | None = None,
        title: str = "AI startup raises seed round",
        image_url: str | None = None,
        tags=("Funding",),
    ):
        link = url or f"https://news.example.com/articles/{uuid.uuid4().hex}"
        candidate = NormalizedArticle(
            title=title,
            url=link,
            url_hash=url_hash(link),
            summary="The startup builds AI tooling for small teams. It plans to hire twenty engineers this year.",
            content="Full story text.",
            published_at=NOW - age,
            image_url=image_url,
            tags=list(tags),
        )
        return db.create_article(source.id, candidate, score, now=NOW - age)

    return _make


@pytest.fixture
def account_of(db):
    def _account(profile: BrandProfile) -> SocialAccount:
        for entry in db.eligible_profiles():
            if entry.profile.id == profile.id:
                return entry.accounts[0]
        raise LookupError(f"No eligible account for profile {profile.id}")

    return _account


@pytest.fixture
def restore_root():
    """Undo handler changes made by setup_logging."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
    clear_context()
