"""Pydantic models for the Curator ingestion service.

RawItem / Enclosure:
    Feed entry shape produced by the fetcher for every feed format.

NormalizedArticle / Article:
    Deduplicatable candidate, and the scored row stored for a source.

NewsSource / SourceType:
    A polled feed endpoint with its reliability score.

Post / PostData / PostStatus:
    Social posts and their DRAFT -> SCHEDULED -> PUBLISHED|FAILED lifecycle.

BrandProfile / User / SocialAccount / EligibleProfile:
    Scoring configuration and the identity data post generation reads.

GeneratedContent / GeneratedPost:
    Post text produced by the content generators.

Example:
    >>> from models import NewsSource
    >>> source = NewsSource(id="s1", brand_profile_id="b1", url="https://example.com/feed")
    >>> source.reliability
    0.5
"""

from models.feed import Enclosure, NormalizedArticle, RawItem
from models.article import Article
from models.source import NewsSource, SourceType
from models.post import Post, PostData, PostStatus, can_transition
from models.content import GeneratedContent, GeneratedPost
from models.profile import (
    BrandProfile,
    EligibleProfile,
    Platform,
    SocialAccount,
    SubscriptionTier,
    User,
    VoiceTone,
    tier_limit,
)

__all__ = [
    "Enclosure",
    "RawItem",
    "NormalizedArticle",
    "Article",
    "NewsSource",
    "SourceType",
    "Post",
    "PostData",
    "PostStatus",
    "can_transition",
    "GeneratedContent",
    "GeneratedPost",
    "BrandProfile",
    "EligibleProfile",
    "Platform",
    "SocialAccount",
    "SubscriptionTier",
    "User",
    "VoiceTone",
    "tier_limit",
]
