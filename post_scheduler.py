"""Scheduled post generation.

Each tick fills every eligible brand profile's posting queue up to its
subscription limit:

    1. ELIGIBLE: Profiles on a paid tier with at least one active account
    2. QUOTA: tier limit minus SCHEDULED posts still in the future
    3. SELECT: Unused articles at or above the generation threshold
    4. GENERATE: Post text via the configured ContentGenerator
    5. SCHEDULE: SCHEDULED post on the first active account at a send time
       chosen by the PostingTimeStrategy

Known limitation: posts always target the owner's first active account;
there is no per-profile account routing.

Error Handling Strategy:
    - A failure for one article is recorded as a PostCreationError outcome
      and the remaining candidates are still processed
    - Posts created earlier in the same tick are never rolled back
    - A failure for one profile does not stop the others
"""

import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from agents.generator import ContentGenerator, create_generator
from config import DEFAULT_POSTING_HOURS, Config
from database import Database
from errors import PostCreationError
from models.article import Article
from models.post import Post, PostData, PostStatus
from models.profile import BrandProfile, EligibleProfile

logger = logging.getLogger(__name__)


class PostingTimeStrategy(Protocol):
    """Chooses when a generated post should be sent."""

    def next_slot(self, profile: BrandProfile, now: datetime, index: int) -> datetime:
        """Send time for the index-th post generated for profile in this tick."""
        ...


class NextDayOptimalHours:
    """Schedules posts for the next UTC day at fixed "optimal" hours.

    Hours are used round-robin in the order posts are created, so a batch
    spreads over the day instead of piling onto one slot.
    """

    def __init__(self, hours: tuple[int, ...] = DEFAULT_POSTING_HOURS):
        if not hours:
            raise ValueError("At least one posting hour is required")
        self.hours = tuple(hours)

    def next_slot(self, profile: BrandProfile, now: datetime, index: int) -> datetime:
        day = (now.astimezone(timezone.utc) + timedelta(days=1)).date()
        hour = self.hours[index % len(self.hours)]
        return datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc)


@dataclass
class ProfileOutcome:
    """Generation outcome for one brand profile."""

    profile_id: str
    tier: str
    limit: int = 0
    scheduled: int = 0
    quota: int = 0
    candidates: int = 0
    created: int = 0
    post_ids: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class GenerationResult:
    """Outcome of one post-generation tick."""

    profiles: list[ProfileOutcome] = field(default_factory=list)
    duration: float = 0.0

    @property
    def created(self) -> int:
        return sum(p.created for p in self.profiles)

    @property
    def failed(self) -> int:
        return sum(len(p.errors) for p in self.profiles)

    def to_dict(self) -> dict[str, Any]:
        return {
            "profiles": [asdict(p) for p in self.profiles],
            "created": self.created,
            "failed": self.failed,
            "duration": round(self.duration, 2),
        }


class ScheduledPostGenerator:
    """Turns high-relevance articles into SCHEDULED posts under tier quotas.

    Example:
        >>> generator = ScheduledPostGenerator.from_config(config, db)
        >>> result = await generator.tick()
        >>> result.created
        4
    """

    def __init__(
        self,
        db: Database,
        generator: ContentGenerator,
        timing: PostingTimeStrategy | None = None,
        min_score: float = 0.5,
    ):
        self.db = db
        self.generator = generator
        self.timing = timing or NextDayOptimalHours()
        self.min_score = min_score

    @classmethod
    def from_config(cls, config: Config, db: Database) -> "ScheduledPostGenerator":
        return cls(
            db,
            create_generator(config),
            timing=NextDayOptimalHours(config.posting_hours),
            min_score=config.min_generation_score,
        )

    async def tick(self, now: datetime | None = None) -> GenerationResult:
        """Generate posts for every eligible profile."""
        start = time.time()
        now = now or datetime.now(timezone.utc)
        result = GenerationResult()

        eligible = self.db.eligible_profiles()
        logger.info("Post generation started | profiles=%d", len(eligible))

        for entry in eligible:
            outcome = ProfileOutcome(profile_id=entry.profile.id, tier=entry.tier.value)
            result.profiles.append(outcome)
            try:
                await self._generate_for_profile(entry, now, outcome)
            except Exception as e:
                outcome.errors.append(f"{type(e).__name__}: {e}")
                logger.error(
                    "Profile generation failed | profile=%s error=%s",
                    entry.profile.id, e, exc_info=True,
                )

        result.duration = time.time() - start
        logger.info(
            "Post generation done | created=%d failed=%d duration=%.1fs",
            result.created, result.failed, result.duration,
        )
        return result

    async def _generate_for_profile(
        self,
        entry: EligibleProfile,
        now: datetime,
        outcome: ProfileOutcome,
    ) -> None:
        profile = entry.profile
        outcome.limit = entry.limit
        outcome.scheduled = self.db.count_future_scheduled(profile.id, now)
        outcome.quota = max(0, outcome.limit - outcome.scheduled)
        if outcome.quota <= 0:
            logger.debug("Quota full | profile=%s limit=%d scheduled=%d", profile.id, outcome.limit, outcome.scheduled)
            return

        articles = self.db.find_unused_high_relevance_articles(profile.id, self.min_score, outcome.quota)
        outcome.candidates = len(articles)

        for article in articles[: outcome.quota]:
            try:
                post = await self._create_post(entry, article, now, outcome.created)
            except PostCreationError as e:
                outcome.errors.append(str(e))
                logger.warning("Post creation failed | profile=%s article=%s error=%s", profile.id, article.id, e)
                continue
            outcome.created += 1
            outcome.post_ids.append(post.id)
            logger.info(
                "Post scheduled | profile=%s article=%s at=%s",
                profile.id, article.id, post.scheduled_for.isoformat(),
            )

    async def _create_post(
        self,
        entry: EligibleProfile,
        article: Article,
        now: datetime,
        index: int,
    ) -> Post:
        """Generate, time and store one post.

        Raises:
            PostCreationError: On any failure for this article
        """
        if not entry.accounts:
            raise PostCreationError(f"No active social account for profile {entry.profile.id}")
        account = entry.accounts[0]

        try:
            content = await self.generator.generate(article, entry.profile, account.platform)
            if not content.text.strip():
                raise ValueError("generated post is empty")
            scheduled_for = self.timing.next_slot(entry.profile, now, index)
            return self.db.create_post(
                PostData(
                    user_id=entry.profile.user_id,
                    brand_profile_id=entry.profile.id,
                    social_account_id=account.id,
                    article_id=article.id,
                    content=content.text,
                    hashtags=content.hashtags,
                    media_urls=[article.image_url] if article.image_url else [],
                    status=PostStatus.SCHEDULED,
                    scheduled_for=scheduled_for,
                ),
                now,
            )
        except Exception as e:
            raise PostCreationError(f"article {article.id}: {type(e).__name__}: {e}") from e
