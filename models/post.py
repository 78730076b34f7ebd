"""Post model and status lifecycle.

Lifecycle:
    DRAFT -> SCHEDULED -> PUBLISHED
                      \\-> FAILED

Only DRAFT and SCHEDULED posts may be deleted. A PUBLISHED post is final.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class PostStatus(str, Enum):
    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    PUBLISHED = "PUBLISHED"
    FAILED = "FAILED"


_TRANSITIONS: dict[PostStatus, frozenset[PostStatus]] = {
    PostStatus.DRAFT: frozenset({PostStatus.SCHEDULED}),
    PostStatus.SCHEDULED: frozenset({PostStatus.PUBLISHED, PostStatus.FAILED}),
    PostStatus.PUBLISHED: frozenset(),
    PostStatus.FAILED: frozenset(),
}

DELETABLE_STATUSES: frozenset[PostStatus] = frozenset({PostStatus.DRAFT, PostStatus.SCHEDULED})


def can_transition(current: PostStatus, target: PostStatus) -> bool:
    """Check whether a post may move from current to target status."""
    return target in _TRANSITIONS[current]


class PostData(BaseModel):
    """Fields supplied when creating a post."""

    user_id: str
    brand_profile_id: str
    social_account_id: str
    article_id: str | None = None
    content: str
    hashtags: list[str] = Field(default_factory=list)
    media_urls: list[str] = Field(default_factory=list)
    status: PostStatus = PostStatus.DRAFT
    scheduled_for: datetime | None = None


class Post(PostData):
    """A stored social-media post."""

    id: str
    published_at: datetime | None = None
    platform_post_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_deletable(self) -> bool:
        return self.status in DELETABLE_STATUSES

    def __str__(self) -> str:
        return f"Post({self.id[:8]}, {self.status.value})"
