"""Feed item normalization.

Turns a RawItem into a NormalizedArticle: dedup hash, image, summary,
tags and publication date.

Rules:
    - Items without a link are dropped (None, not an error)
    - url_hash is the SHA-256 hex digest of the link, the only dedup key
    - Image: image/* enclosure, then media:content, then media:thumbnail
    - Summary: snippet, then first 500 chars of content, then title
    - Tags: category values that are non-empty strings, first occurrence kept
    - published_at: item date, else the ingestion time
"""

from datetime import datetime, timezone
from hashlib import sha256

from errors import ItemProcessingError
from feeds import strip_html
from models.feed import NormalizedArticle, RawItem
from models.source import NewsSource

SUMMARY_MAX_CHARS = 500
UNTITLED = "Untitled"


def url_hash(link: str) -> str:
    """SHA-256 hex digest of a link."""
    return sha256(link.encode("utf-8")).hexdigest()


def _image_url(item: RawItem) -> str | None:
    for enclosure in item.enclosures:
        if enclosure.type.startswith("image/"):
            return enclosure.url
    if item.media_content:
        return item.media_content[0]
    if item.media_thumbnail:
        return item.media_thumbnail[0]
    return None


def _tags(categories: list) -> list[str]:
    tags = []
    for category in categories:
        if not isinstance(category, str):
            continue
        tag = category.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def normalize(
    item: RawItem,
    source: NewsSource | None = None,
    now: datetime | None = None,
) -> NormalizedArticle | None:
    """Convert a raw feed item into an article candidate.

    Args:
        item: Parsed feed item
        source: Owning source (used for error context only)
        now: Ingestion time, used when the item has no date

    Returns:
        NormalizedArticle, or None when the item has no link

    Raises:
        ItemProcessingError: If the item is structurally unusable
    """
    link = item.link
    if link is None or (isinstance(link, str) and not link.strip()):
        return None
    if not isinstance(link, str):
        where = f" from {source.url}" if source else ""
        raise ItemProcessingError(f"Item link is not a string{where}: {link!r}")
    link = link.strip()

    title = item.title.strip() or UNTITLED
    content = strip_html(item.content) or item.snippet or None
    summary = item.snippet or (content[:SUMMARY_MAX_CHARS] if content else None) or title

    published_at = item.pub_date or now or datetime.now(timezone.utc)
    if published_at.tzinfo is None:
        published_at = published_at.replace(tzinfo=timezone.utc)

    return NormalizedArticle(
        title=title,
        url=link,
        url_hash=url_hash(link),
        summary=summary[:SUMMARY_MAX_CHARS],
        content=content,
        author=item.author or None,
        published_at=published_at,
        image_url=_image_url(item),
        tags=_tags(item.categories),
    )
