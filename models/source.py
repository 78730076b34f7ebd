"""News source model."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

DEFAULT_RELIABILITY = 0.5


class SourceType(str, Enum):
    """Kind of endpoint a source points at."""

    RSS = "rss"
    WEBSITE = "website"
    SOCIAL = "social"


class NewsSource(BaseModel):
    """A feed endpoint owned by a brand profile.

    Attributes:
        id: Source identifier
        brand_profile_id: Owning brand profile
        name: Display name
        url: Feed URL
        type: Endpoint kind
        is_active: Inactive sources are never polled
        weight: Posting-priority multiplier (0-2)
        reliability: Trust score adjusted on every ingestion attempt (0-1)
        last_checked: Time of the last ingestion attempt, None if never
    """

    id: str
    brand_profile_id: str
    name: str = ""
    url: str
    type: SourceType = SourceType.RSS
    is_active: bool = True
    weight: float = Field(default=1.0, ge=0.0, le=2.0)
    reliability: float = Field(default=DEFAULT_RELIABILITY, ge=0.0, le=1.0)
    last_checked: datetime | None = None

    def __str__(self) -> str:
        return f"NewsSource({self.id[:8]}, {self.url})"
