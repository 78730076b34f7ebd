"""Feed item models.

RawItem is the strict shape every parsed feed entry is converted into at
the fetch boundary, whatever the source format (RSS, Atom, JSON Feed).
NormalizedArticle is the canonical candidate produced from a RawItem
before scoring and storage.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Enclosure(BaseModel):
    """An attached media reference (RSS <enclosure> / Atom enclosure link)."""

    model_config = ConfigDict(frozen=True)

    url: str
    type: str = ""


class RawItem(BaseModel):
    """A feed entry as parsed, before any normalization.

    Attributes:
        title: Entry title (may be empty)
        link: Entry URL; items without one are dropped by the normalizer
        pub_date: Publication time in UTC, if the feed supplied a parsable one
        content: Full content (HTML or text)
        snippet: Plain-text summary/description
        author: Creator or author name
        categories: Category/tag values exactly as found (not all are strings)
        enclosures: Attached media
        media_content: URLs from media:content elements
        media_thumbnail: URLs from media:thumbnail elements
    """

    model_config = ConfigDict(frozen=True)

    title: str = ""
    link: str | None = None
    pub_date: datetime | None = None
    content: str = ""
    snippet: str = ""
    author: str | None = None
    categories: list[Any] = Field(default_factory=list)
    enclosures: list[Enclosure] = Field(default_factory=list)
    media_content: list[str] = Field(default_factory=list)
    media_thumbnail: list[str] = Field(default_factory=list)


class NormalizedArticle(BaseModel):
    """A deduplicatable article candidate derived from one RawItem."""

    title: str = Field(description="Article headline")
    url: str = Field(description="Canonical article link")
    url_hash: str = Field(description="SHA-256 of the link, the dedup key")
    summary: str | None = Field(default=None, max_length=500)
    content: str | None = None
    author: str | None = None
    published_at: datetime
    image_url: str | None = None
    tags: list[str] = Field(default_factory=list)

    def text(self) -> str:
        """Combined title, summary and content used for scoring."""
        return f"{self.title} {self.summary or ''} {self.content or ''}"

    def __str__(self) -> str:
        return f"NormalizedArticle({self.url_hash[:8]}..., '{self.title[:50]}')"
