"""Brand profile, user and social account models.

Users and social accounts come from the identity layer; the core only
reads them as plain data to decide which profiles may generate posts.
"""

from enum import Enum

from pydantic import BaseModel, Field


class SubscriptionTier(str, Enum):
    """Subscription plans. FREE never generates scheduled posts."""

    FREE = "FREE"
    PROFESSIONAL = "PROFESSIONAL"
    BUSINESS = "BUSINESS"
    ENTERPRISE = "ENTERPRISE"


# Maximum future scheduled posts per profile
TIER_POST_LIMITS: dict[SubscriptionTier, int] = {
    SubscriptionTier.FREE: 0,
    SubscriptionTier.PROFESSIONAL: 5,
    SubscriptionTier.BUSINESS: 10,
    SubscriptionTier.ENTERPRISE: 20,
}


def tier_limit(tier: SubscriptionTier | str | None) -> int:
    """Scheduled-post limit for a tier (unknown tiers get 0)."""
    try:
        return TIER_POST_LIMITS[SubscriptionTier(tier)]
    except ValueError:
        return 0


class VoiceTone(str, Enum):
    """Brand voice used to pick post templates and AI instructions."""

    PROFESSIONAL = "PROFESSIONAL"
    CASUAL = "CASUAL"
    FORMAL = "FORMAL"
    HUMOROUS = "HUMOROUS"


class Platform(str, Enum):
    """Social platforms posts can target."""

    TWITTER = "twitter"
    LINKEDIN = "linkedin"
    FACEBOOK = "facebook"


class User(BaseModel):
    """Authenticated user record as supplied by the identity layer."""

    id: str
    email: str = ""
    subscription_tier: SubscriptionTier = SubscriptionTier.FREE


class SocialAccount(BaseModel):
    """A connected platform account."""

    id: str
    user_id: str
    platform: Platform
    username: str = ""
    is_active: bool = True


class BrandProfile(BaseModel):
    """Scoring and generation configuration for one brand.

    Attributes:
        keywords: Terms that raise relevance
        excluded_keywords: Terms that veto an article outright
        voice_tone: Tone used for generated posts
        industry: Industry label, used in templates and hashtags
        niche: Niche label, used in hashtags
    """

    id: str
    user_id: str
    name: str = ""
    industry: str = ""
    niche: str = ""
    keywords: list[str] = Field(default_factory=list)
    excluded_keywords: list[str] = Field(default_factory=list)
    voice_tone: VoiceTone = VoiceTone.PROFESSIONAL


class EligibleProfile(BaseModel):
    """A brand profile together with the owner's plan and active accounts."""

    profile: BrandProfile
    tier: SubscriptionTier
    accounts: list[SocialAccount] = Field(default_factory=list)

    @property
    def limit(self) -> int:
        return tier_limit(self.tier)
