"""Generated post content models."""

from pydantic import BaseModel, Field

from models.profile import Platform


class GeneratedPost(BaseModel):
    """Structured output requested from the AI content model."""

    text: str = Field(description="Post body without hashtags, ready to publish")
    hashtags: list[str] = Field(
        default_factory=list,
        description="2-5 relevant hashtags, each starting with #",
    )


class GeneratedContent(BaseModel):
    """Post text and hashtags produced for one platform.

    Both generator strategies return this shape, so callers never know
    which one produced it.
    """

    text: str
    hashtags: list[str] = Field(default_factory=list)
    platform: Platform
