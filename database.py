"""SQLite persistence for the Curator ingestion service.

This module is the repository-style store the ingestion, generation,
publishing and retention jobs talk to. Every method is a single statement
(or a read followed by one write) committed immediately; no job relies on
multi-statement transactions.

Database Schema:
    users: identity data (id, email, subscription_tier)
    brand_profiles: keyword sets and voice per brand, owned by a user
    social_accounts: connected platform accounts, owned by a user
    news_sources: feed endpoints owned by a brand profile
        - reliability (REAL 0-1), last_checked (INTEGER epoch, NULL = never)
    articles: scored, deduplicated items, owned by a source
        - url_hash (TEXT UNIQUE): SHA-256 of the link, the dedup key
        - deleting a source cascades to its articles
    posts: social posts, optionally backed by one article
        - status: DRAFT | SCHEDULED | PUBLISHED | FAILED

Timestamps are stored as Unix epoch seconds and returned as aware UTC
datetimes.

Features:
    - WAL mode for concurrent read/write access
    - Foreign keys enforced (cascading source -> articles)
    - url_hash uniqueness as the concurrency safety net for ingestion
    - Context manager support for auto-cleanup
"""

import json
import logging
import sqlite3
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from errors import PersistenceConflict, PostStateError
from models.article import Article
from models.feed import NormalizedArticle
from models.post import DELETABLE_STATUSES, Post, PostData, PostStatus, can_transition
from models.profile import (
    BrandProfile,
    EligibleProfile,
    SocialAccount,
    SubscriptionTier,
    User,
)
from models.source import NewsSource

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return uuid.uuid4().hex


def _ts(value: datetime | None) -> int | None:
    """Aware (or naive UTC) datetime -> epoch seconds."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def _dt(value: int | None) -> datetime | None:
    """Epoch seconds -> aware UTC datetime."""
    if value is None:
        return None
    return datetime.fromtimestamp(value, timezone.utc)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Database:
    """SQLite store for sources, articles, posts and the identity data they need.

    Example:
        >>> with Database("curator.db") as db:
        ...     sources = db.find_due_sources(limit=10, refresh_interval=timedelta(minutes=30))
    """

    SCHEMA = """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL DEFAULT '',
        subscription_tier TEXT NOT NULL DEFAULT 'FREE'
    );

    CREATE TABLE IF NOT EXISTS brand_profiles (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        name TEXT NOT NULL DEFAULT '',
        industry TEXT NOT NULL DEFAULT '',
        niche TEXT NOT NULL DEFAULT '',
        keywords TEXT NOT NULL DEFAULT '[]',           -- JSON list
        excluded_keywords TEXT NOT NULL DEFAULT '[]',  -- JSON list
        voice_tone TEXT NOT NULL DEFAULT 'PROFESSIONAL'
    );

    CREATE TABLE IF NOT EXISTS social_accounts (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        platform TEXT NOT NULL,
        username TEXT NOT NULL DEFAULT '',
        is_active INTEGER NOT NULL DEFAULT 1
    );

    CREATE TABLE IF NOT EXISTS news_sources (
        id TEXT PRIMARY KEY,
        brand_profile_id TEXT NOT NULL REFERENCES brand_profiles(id) ON DELETE CASCADE,
        name TEXT NOT NULL DEFAULT '',
        url TEXT NOT NULL,
        type TEXT NOT NULL DEFAULT 'rss',
        is_active INTEGER NOT NULL DEFAULT 1,
        weight REAL NOT NULL DEFAULT 1.0,
        reliability REAL NOT NULL DEFAULT 0.5,
        last_checked INTEGER                   -- NULL until first attempt
    );

    -- Due-source selection: active, ordered by reliability then staleness
    CREATE INDEX IF NOT EXISTS idx_sources_due
        ON news_sources(is_active, reliability, last_checked);

    CREATE TABLE IF NOT EXISTS articles (
        id TEXT PRIMARY KEY,
        source_id TEXT NOT NULL REFERENCES news_sources(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        url TEXT NOT NULL,
        url_hash TEXT NOT NULL UNIQUE,
        summary TEXT,
        content TEXT,
        author TEXT,
        published_at INTEGER NOT NULL,
        image_url TEXT,
        tags TEXT NOT NULL DEFAULT '[]',       -- JSON list
        relevance_score REAL NOT NULL,
        created_at INTEGER NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_articles_source ON articles(source_id);
    CREATE INDEX IF NOT EXISTS idx_articles_relevance
        ON articles(relevance_score, published_at);

    CREATE TABLE IF NOT EXISTS posts (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        brand_profile_id TEXT NOT NULL REFERENCES brand_profiles(id) ON DELETE CASCADE,
        social_account_id TEXT NOT NULL,
        article_id TEXT REFERENCES articles(id) ON DELETE SET NULL,
        content TEXT NOT NULL,
        hashtags TEXT NOT NULL DEFAULT '[]',   -- JSON list
        media_urls TEXT NOT NULL DEFAULT '[]', -- JSON list
        status TEXT NOT NULL DEFAULT 'DRAFT',
        scheduled_for INTEGER,
        published_at INTEGER,
        platform_post_id TEXT,
        created_at INTEGER NOT NULL,
        updated_at INTEGER NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_posts_article ON posts(article_id);
    CREATE INDEX IF NOT EXISTS idx_posts_status_scheduled ON posts(status, scheduled_for);
    CREATE INDEX IF NOT EXISTS idx_posts_profile ON posts(brand_profile_id, status);
    """

    path: Path
    conn: sqlite3.Connection

    def __init__(self, path: Path | str):
        """Open (and create if needed) the database.

        Args:
            path: SQLite file path, or ":memory:"
        """
        self.path = Path(path)
        self.conn = sqlite3.connect(str(path))
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA foreign_keys=ON")
        self.conn.executescript(self.SCHEMA)
        self.conn.commit()
        logger.debug("Database initialized | path=%s", self.path)

    # === Identity data ===

    def upsert_user(self, user: User) -> User:
        self.conn.execute(
            """
            INSERT INTO users (id, email, subscription_tier) VALUES (?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                email = excluded.email,
                subscription_tier = excluded.subscription_tier
            """,
            (user.id, user.email, user.subscription_tier.value),
        )
        self.conn.commit()
        return user

    def create_profile(self, profile: BrandProfile) -> BrandProfile:
        self.conn.execute(
            """
            INSERT INTO brand_profiles
            (id, user_id, name, industry, niche, keywords, excluded_keywords, voice_tone)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                profile.id,
                profile.user_id,
                profile.name,
                profile.industry,
                profile.niche,
                json.dumps(profile.keywords),
                json.dumps(profile.excluded_keywords),
                profile.voice_tone.value,
            ),
        )
        self.conn.commit()
        return profile

    def get_profile(self, profile_id: str) -> BrandProfile | None:
        row = self.conn.execute(
            "SELECT * FROM brand_profiles WHERE id = ?", (profile_id,)
        ).fetchone()
        return self._row_to_profile(row) if row else None

    def create_social_account(self, account: SocialAccount) -> SocialAccount:
        self.conn.execute(
            """
            INSERT INTO social_accounts (id, user_id, platform, username, is_active)
            VALUES (?, ?, ?, ?, ?)
            """,
            (account.id, account.user_id, account.platform.value, account.username, int(account.is_active)),
        )
        self.conn.commit()
        return account

    def get_social_account(self, account_id: str) -> SocialAccount | None:
        row = self.conn.execute(
            "SELECT * FROM social_accounts WHERE id = ?", (account_id,)
        ).fetchone()
        return self._row_to_account(row) if row else None

    def eligible_profiles(self) -> list[EligibleProfile]:
        """Profiles on a paid tier whose owner has at least one active account.

        Accounts are returned in a stable order; the first one is the
        default posting target.
        """
        rows = self.conn.execute(
            """
            SELECT p.*, u.subscription_tier
            FROM brand_profiles p
            JOIN users u ON u.id = p.user_id
            WHERE u.subscription_tier != ?
            ORDER BY p.id
            """,
            (SubscriptionTier.FREE.value,),
        ).fetchall()

        eligible = []
        for row in rows:
            accounts = [
                self._row_to_account(acc)
                for acc in self.conn.execute(
                    """
                    SELECT * FROM social_accounts
                    WHERE user_id = ? AND is_active = 1
                    ORDER BY rowid
                    """,
                    (row["user_id"],),
                ).fetchall()
            ]
            if not accounts:
                continue
            try:
                tier = SubscriptionTier(row["subscription_tier"])
            except ValueError:
                logger.warning("Unknown subscription tier | profile=%s tier=%s", row["id"], row["subscription_tier"])
                continue
            eligible.append(EligibleProfile(profile=self._row_to_profile(row), tier=tier, accounts=accounts))
        return eligible

    # === Sources ===

    def create_source(self, source: NewsSource) -> NewsSource:
        self.conn.execute(
            """
            INSERT INTO news_sources
            (id, brand_profile_id, name, url, type, is_active, weight, reliability, last_checked)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                source.id,
                source.brand_profile_id,
                source.name,
                source.url,
                source.type.value,
                int(source.is_active),
                source.weight,
                source.reliability,
                _ts(source.last_checked),
            ),
        )
        self.conn.commit()
        return source

    def get_source(self, source_id: str) -> NewsSource | None:
        row = self.conn.execute(
            "SELECT * FROM news_sources WHERE id = ?", (source_id,)
        ).fetchone()
        return self._row_to_source(row) if row else None

    def list_sources(self, profile_id: str | None = None) -> list[NewsSource]:
        if profile_id:
            rows = self.conn.execute(
                "SELECT * FROM news_sources WHERE brand_profile_id = ? ORDER BY reliability DESC",
                (profile_id,),
            ).fetchall()
        else:
            rows = self.conn.execute(
                "SELECT * FROM news_sources ORDER BY reliability DESC"
            ).fetchall()
        return [self._row_to_source(row) for row in rows]

    def delete_source(self, source_id: str) -> bool:
        """Delete a source and (by cascade) its articles."""
        cursor = self.conn.execute("DELETE FROM news_sources WHERE id = ?", (source_id,))
        self.conn.commit()
        return cursor.rowcount > 0

    def update_source_check(self, source_id: str, reliability: float, checked_at: datetime) -> None:
        """Persist the outcome of one ingestion attempt."""
        self.conn.execute(
            "UPDATE news_sources SET reliability = ?, last_checked = ? WHERE id = ?",
            (reliability, _ts(checked_at), source_id),
        )
        self.conn.commit()

    def find_due_sources(
        self,
        limit: int,
        refresh_interval: timedelta,
        now: datetime | None = None,
    ) -> list[NewsSource]:
        """Active sources never checked or checked before now - refresh_interval.

        Ordered by reliability (desc) then last_checked (asc, never-checked first).
        """
        cutoff = _ts((now or _now()) - refresh_interval)
        rows = self.conn.execute(
            """
            SELECT * FROM news_sources
            WHERE is_active = 1
              AND (last_checked IS NULL OR last_checked < ?)
            ORDER BY reliability DESC, last_checked IS NOT NULL, last_checked ASC
            LIMIT ?
            """,
            (cutoff, limit),
        ).fetchall()
        return [self._row_to_source(row) for row in rows]

    # === Articles ===

    def find_by_url_hash(self, url_hash: str) -> Article | None:
        row = self.conn.execute(
            """
            SELECT a.*, s.name AS source_name
            FROM articles a JOIN news_sources s ON s.id = a.source_id
            WHERE a.url_hash = ?
            """,
            (url_hash,),
        ).fetchone()
        return self._row_to_article(row) if row else None

    def get_article(self, article_id: str) -> Article | None:
        row = self.conn.execute(
            """
            SELECT a.*, s.name AS source_name
            FROM articles a JOIN news_sources s ON s.id = a.source_id
            WHERE a.id = ?
            """,
            (article_id,),
        ).fetchone()
        return self._row_to_article(row) if row else None

    def create_article(
        self,
        source_id: str,
        article: NormalizedArticle,
        relevance_score: float,
        now: datetime | None = None,
    ) -> Article:
        """Insert a scored article.

        Raises:
            PersistenceConflict: If an article with the same url_hash exists
        """
        article_id = _new_id()
        created_at = now or _now()
        try:
            self.conn.execute(
                """
                INSERT INTO articles
                (id, source_id, title, url, url_hash, summary, content, author,
                 published_at, image_url, tags, relevance_score, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    article_id,
                    source_id,
                    article.title,
                    article.url,
                    article.url_hash,
                    article.summary,
                    article.content,
                    article.author,
                    _ts(article.published_at),
                    article.image_url,
                    json.dumps(article.tags),
                    relevance_score,
                    _ts(created_at),
                ),
            )
        except sqlite3.IntegrityError as e:
            self.conn.rollback()
            if "url_hash" in str(e):
                raise PersistenceConflict(article.url_hash) from e
            raise
        self.conn.commit()
        logger.debug("Article saved | hash=%s score=%.2f", article.url_hash[:12], relevance_score)
        return Article(
            **article.model_dump(),
            id=article_id,
            source_id=source_id,
            relevance_score=relevance_score,
            created_at=created_at,
        )

    def count_articles(self, source_id: str | None = None) -> int:
        if source_id:
            row = self.conn.execute(
                "SELECT COUNT(*) AS n FROM articles WHERE source_id = ?", (source_id,)
            ).fetchone()
        else:
            row = self.conn.execute("SELECT COUNT(*) AS n FROM articles").fetchone()
        return row["n"]

    def find_unused_high_relevance_articles(
        self,
        profile_id: str,
        min_score: float,
        limit: int,
    ) -> list[Article]:
        """Profile articles at or above min_score that no post references."""
        if limit <= 0:
            return []
        rows = self.conn.execute(
            """
            SELECT a.*, s.name AS source_name
            FROM articles a
            JOIN news_sources s ON s.id = a.source_id
            WHERE s.brand_profile_id = ?
              AND a.relevance_score >= ?
              AND NOT EXISTS (SELECT 1 FROM posts p WHERE p.article_id = a.id)
            ORDER BY a.relevance_score DESC, a.published_at DESC
            LIMIT ?
            """,
            (profile_id, min_score, limit),
        ).fetchall()
        return [self._row_to_article(row) for row in rows]

    def latest_articles(
        self,
        profile_id: str,
        min_score: float = 0.3,
        limit: int = 20,
    ) -> list[Article]:
        """Best recent articles from a profile's active sources."""
        rows = self.conn.execute(
            """
            SELECT a.*, s.name AS source_name
            FROM articles a
            JOIN news_sources s ON s.id = a.source_id
            WHERE s.brand_profile_id = ?
              AND s.is_active = 1
              AND a.relevance_score >= ?
            ORDER BY a.relevance_score DESC, a.published_at DESC
            LIMIT ?
            """,
            (profile_id, min_score, limit),
        ).fetchall()
        return [self._row_to_article(row) for row in rows]

    # === Posts ===

    def create_post(self, data: PostData, now: datetime | None = None) -> Post:
        post_id = _new_id()
        created_at = now or _now()
        self.conn.execute(
            """
            INSERT INTO posts
            (id, user_id, brand_profile_id, social_account_id, article_id, content,
             hashtags, media_urls, status, scheduled_for, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                post_id,
                data.user_id,
                data.brand_profile_id,
                data.social_account_id,
                data.article_id,
                data.content,
                json.dumps(data.hashtags),
                json.dumps(data.media_urls),
                data.status.value,
                _ts(data.scheduled_for),
                _ts(created_at),
                _ts(created_at),
            ),
        )
        self.conn.commit()
        return Post(**data.model_dump(), id=post_id, created_at=created_at, updated_at=created_at)

    def get_post(self, post_id: str) -> Post | None:
        row = self.conn.execute("SELECT * FROM posts WHERE id = ?", (post_id,)).fetchone()
        return self._row_to_post(row) if row else None

    def list_posts(self, profile_id: str, status: PostStatus | None = None) -> list[Post]:
        if status:
            rows = self.conn.execute(
                "SELECT * FROM posts WHERE brand_profile_id = ? AND status = ? ORDER BY created_at",
                (profile_id, status.value),
            ).fetchall()
        else:
            rows = self.conn.execute(
                "SELECT * FROM posts WHERE brand_profile_id = ? ORDER BY created_at",
                (profile_id,),
            ).fetchall()
        return [self._row_to_post(row) for row in rows]

    def count_future_scheduled(self, profile_id: str, now: datetime | None = None) -> int:
        """SCHEDULED posts of a profile whose send time is now or later."""
        row = self.conn.execute(
            """
            SELECT COUNT(*) AS n FROM posts
            WHERE brand_profile_id = ? AND status = ? AND scheduled_for >= ?
            """,
            (profile_id, PostStatus.SCHEDULED.value, _ts(now or _now())),
        ).fetchone()
        return row["n"]

    def find_due_posts(self, now: datetime | None = None, limit: int = 50) -> list[Post]:
        """SCHEDULED posts whose send time has passed, oldest first."""
        rows = self.conn.execute(
            """
            SELECT * FROM posts
            WHERE status = ? AND scheduled_for <= ?
            ORDER BY scheduled_for ASC
            LIMIT ?
            """,
            (PostStatus.SCHEDULED.value, _ts(now or _now()), limit),
        ).fetchall()
        return [self._row_to_post(row) for row in rows]

    def update_post_status(
        self,
        post_id: str,
        status: PostStatus,
        now: datetime | None = None,
        **fields: Any,
    ) -> Post:
        """Move a post to a new status, enforcing the lifecycle.

        Args:
            post_id: Post to update
            status: Target status
            now: Update time
            **fields: Extra columns to set (published_at, platform_post_id, scheduled_for)

        Raises:
            PostStateError: If the post is missing or the transition is illegal
        """
        post = self.get_post(post_id)
        if post is None:
            raise PostStateError(f"Post not found: {post_id}")
        if not can_transition(post.status, status):
            raise PostStateError(f"Illegal transition {post.status.value} -> {status.value} for post {post_id}")

        allowed = {"published_at", "platform_post_id", "scheduled_for"}
        unknown = set(fields) - allowed
        if unknown:
            raise ValueError(f"Cannot update post fields: {sorted(unknown)}")

        assignments = ["status = ?", "updated_at = ?"]
        params: list[Any] = [status.value, _ts(now or _now())]
        for name, value in fields.items():
            assignments.append(f"{name} = ?")
            params.append(_ts(value) if isinstance(value, datetime) else value)
        params.append(post_id)

        self.conn.execute(f"UPDATE posts SET {', '.join(assignments)} WHERE id = ?", params)
        self.conn.commit()
        return self.get_post(post_id)

    def delete_post(self, post_id: str) -> None:
        """Delete a DRAFT or SCHEDULED post.

        Raises:
            PostStateError: If the post is missing or not deletable
        """
        post = self.get_post(post_id)
        if post is None:
            raise PostStateError(f"Post not found: {post_id}")
        if post.status not in DELETABLE_STATUSES:
            raise PostStateError(f"Post {post_id} is {post.status.value} and cannot be deleted")
        self.conn.execute("DELETE FROM posts WHERE id = ?", (post_id,))
        self.conn.commit()

    # === Retention ===

    def delete_low_relevance_articles(self, cutoff: datetime, max_score: float) -> int:
        """Delete unreferenced articles published before cutoff scoring below max_score."""
        cursor = self.conn.execute(
            """
            DELETE FROM articles
            WHERE published_at < ?
              AND relevance_score < ?
              AND NOT EXISTS (SELECT 1 FROM posts p WHERE p.article_id = articles.id)
            """,
            (_ts(cutoff), max_score),
        )
        self.conn.commit()
        return cursor.rowcount

    def delete_stale_articles(self, cutoff: datetime) -> int:
        """Delete unreferenced articles published before cutoff, any score."""
        cursor = self.conn.execute(
            """
            DELETE FROM articles
            WHERE published_at < ?
              AND NOT EXISTS (SELECT 1 FROM posts p WHERE p.article_id = articles.id)
            """,
            (_ts(cutoff),),
        )
        self.conn.commit()
        return cursor.rowcount

    def delete_failed_posts(self, cutoff: datetime) -> int:
        """Delete FAILED posts created before cutoff."""
        cursor = self.conn.execute(
            "DELETE FROM posts WHERE status = ? AND created_at < ?",
            (PostStatus.FAILED.value, _ts(cutoff)),
        )
        self.conn.commit()
        return cursor.rowcount

    def optimize(self) -> None:
        """Refresh query planner statistics."""
        self.conn.execute("ANALYZE")
        self.conn.commit()

    # === Statistics ===

    def stats(self) -> dict[str, int]:
        """Row counts for the status command."""
        counts = {}
        for table in ("news_sources", "articles", "brand_profiles"):
            counts[table] = self.conn.execute(f"SELECT COUNT(*) AS n FROM {table}").fetchone()["n"]
        for status in PostStatus:
            counts[f"posts_{status.value.lower()}"] = self.conn.execute(
                "SELECT COUNT(*) AS n FROM posts WHERE status = ?", (status.value,)
            ).fetchone()["n"]
        counts["sources_active"] = self.conn.execute(
            "SELECT COUNT(*) AS n FROM news_sources WHERE is_active = 1"
        ).fetchone()["n"]
        return counts

    # === Row mapping ===

    @staticmethod
    def _row_to_profile(row: sqlite3.Row) -> BrandProfile:
        return BrandProfile(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            industry=row["industry"],
            niche=row["niche"],
            keywords=json.loads(row["keywords"]),
            excluded_keywords=json.loads(row["excluded_keywords"]),
            voice_tone=row["voice_tone"],
        )

    @staticmethod
    def _row_to_account(row: sqlite3.Row) -> SocialAccount:
        return SocialAccount(
            id=row["id"],
            user_id=row["user_id"],
            platform=row["platform"],
            username=row["username"],
            is_active=bool(row["is_active"]),
        )

    @staticmethod
    def _row_to_source(row: sqlite3.Row) -> NewsSource:
        return NewsSource(
            id=row["id"],
            brand_profile_id=row["brand_profile_id"],
            name=row["name"],
            url=row["url"],
            type=row["type"],
            is_active=bool(row["is_active"]),
            weight=row["weight"],
            reliability=row["reliability"],
            last_checked=_dt(row["last_checked"]),
        )

    @staticmethod
    def _row_to_article(row: sqlite3.Row) -> Article:
        return Article(
            id=row["id"],
            source_id=row["source_id"],
            title=row["title"],
            url=row["url"],
            url_hash=row["url_hash"],
            summary=row["summary"],
            content=row["content"],
            author=row["author"],
            published_at=_dt(row["published_at"]),
            image_url=row["image_url"],
            tags=json.loads(row["tags"]),
            relevance_score=row["relevance_score"],
            created_at=_dt(row["created_at"]),
            source_name=row["source_name"] if "source_name" in row.keys() else "",
        )

    @staticmethod
    def _row_to_post(row: sqlite3.Row) -> Post:
        return Post(
            id=row["id"],
            user_id=row["user_id"],
            brand_profile_id=row["brand_profile_id"],
            social_account_id=row["social_account_id"],
            article_id=row["article_id"],
            content=row["content"],
            hashtags=json.loads(row["hashtags"]),
            media_urls=json.loads(row["media_urls"]),
            status=row["status"],
            scheduled_for=_dt(row["scheduled_for"]),
            published_at=_dt(row["published_at"]),
            platform_post_id=row["platform_post_id"],
            created_at=_dt(row["created_at"]),
            updated_at=_dt(row["updated_at"]),
        )

    def close(self) -> None:
        """Close the database connection."""
        self.conn.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
