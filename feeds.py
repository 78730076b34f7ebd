"""Async feed fetching and parsing module.

This module retrieves a feed document over HTTP and converts it into a
list of RawItem objects, the single item shape used by the rest of the
ingestion pipeline.

Features:
    - Hard per-request timeout and a descriptive User-Agent
    - certifi CA bundle for TLS verification
    - RSS and Atom parsing via feedparser
    - JSON Feed (jsonfeed.org) parsing
    - Optional shared aiohttp session across many sources

Error Handling Strategy:
    - Network errors, timeouts, non-2xx statuses and unparsable bodies
      are all raised as a single FetchError
    - There is no partial recovery: a document either parses or it doesn't
    - The caller (IngestionPipeline) decides what a failure costs the source
"""

import asyncio
import calendar
import json
import logging
import ssl
from datetime import datetime, timezone
from html.parser import HTMLParser
from io import StringIO
from typing import Any

import aiohttp
import certifi
import feedparser
from pydantic import ValidationError

from config import DEFAULT_USER_AGENT
from errors import FetchError
from models.feed import Enclosure, RawItem

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class _HTMLTextExtractor(HTMLParser):
    """Collect text content from an HTML fragment, skipping scripts and styles."""

    SKIP_TAGS = frozenset({"script", "style"})

    def __init__(self):
        super().__init__()
        self._buffer = StringIO()
        self._skip_depth = 0

    def handle_starttag(self, tag, attrs):
        if tag in self.SKIP_TAGS:
            self._skip_depth += 1

    def handle_endtag(self, tag):
        if tag in self.SKIP_TAGS and self._skip_depth > 0:
            self._skip_depth -= 1

    def handle_data(self, data):
        if self._skip_depth == 0:
            self._buffer.write(data)

    def get_text(self) -> str:
        return self._buffer.getvalue()


def strip_html(value: str) -> str:
    """Convert an HTML fragment into whitespace-collapsed plain text."""
    if not value:
        return ""
    if "<" not in value:
        return " ".join(value.split())
    parser = _HTMLTextExtractor()
    parser.feed(value)
    parser.close()
    return " ".join(parser.get_text().split())


def _parse_date(entry: dict) -> datetime | None:
    """Extract publication date from a feedparser entry.

    Tries published_parsed, then updated_parsed, then created_parsed.
    feedparser normalizes these to UTC struct_time values.
    """
    for field in ("published_parsed", "updated_parsed", "created_parsed"):
        time_tuple = entry.get(field)
        if time_tuple:
            try:
                return datetime.fromtimestamp(calendar.timegm(time_tuple), tz=timezone.utc)
            except (TypeError, ValueError, OverflowError):
                continue
    return None


def _parse_iso_date(value: Any) -> datetime | None:
    """Parse an RFC 3339 date string as used by JSON Feed."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _media_urls(values: Any) -> list[str]:
    """Collect url attributes from feedparser media:* lists."""
    urls = []
    for value in values or []:
        url = value.get("url") if isinstance(value, dict) else None
        if isinstance(url, str) and url:
            urls.append(url)
    return urls


def _entry_to_item(entry: dict) -> RawItem:
    """Convert one feedparser entry into a RawItem."""
    content = ""
    for block in entry.get("content") or []:
        value = block.get("value") if isinstance(block, dict) else None
        if value:
            content = value
            break

    summary = entry.get("summary") or entry.get("description") or ""
    if not content:
        content = summary

    enclosures = []
    for enc in entry.get("enclosures") or []:
        href = enc.get("href") or enc.get("url")
        if isinstance(href, str) and href:
            enclosures.append(Enclosure(url=href, type=enc.get("type") or ""))

    link = entry.get("link")
    return RawItem(
        title=(entry.get("title") or "").strip(),
        link=link.strip() if isinstance(link, str) and link.strip() else None,
        pub_date=_parse_date(entry),
        content=content,
        snippet=strip_html(summary),
        author=entry.get("author") or None,
        categories=[tag.get("term") for tag in entry.get("tags") or []],
        enclosures=enclosures,
        media_content=_media_urls(entry.get("media_content")),
        media_thumbnail=_media_urls(entry.get("media_thumbnail")),
    )


def _text(value: Any) -> str:
    """A JSON Feed string field, or "" when absent or of another type."""
    return value if isinstance(value, str) else ""


def _json_item_to_item(item: dict) -> RawItem:
    """Convert one JSON Feed item into a RawItem.

    Fields of the wrong JSON type are treated as absent.
    """
    authors = item.get("authors")
    if not isinstance(authors, list):
        authors = [item["author"]] if item.get("author") else []
    author = None
    if authors and isinstance(authors[0], dict):
        author = _text(authors[0].get("name")) or None

    enclosures = []
    attachments = item.get("attachments")
    for attachment in attachments if isinstance(attachments, list) else []:
        if isinstance(attachment, dict) and _text(attachment.get("url")):
            enclosures.append(Enclosure(url=attachment["url"], type=_text(attachment.get("mime_type"))))

    link = _text(item.get("url")) or _text(item.get("external_url"))
    content = _text(item.get("content_html")) or _text(item.get("content_text"))
    images = [url for url in (item.get("image"), item.get("banner_image")) if isinstance(url, str) and url]
    tags = item.get("tags")

    return RawItem(
        title=_text(item.get("title")).strip(),
        link=link.strip() or None,
        pub_date=_parse_iso_date(item.get("date_published") or item.get("date_modified")),
        content=content,
        snippet=strip_html(_text(item.get("summary"))),
        author=author,
        categories=list(tags) if isinstance(tags, list) else [],
        enclosures=enclosures,
        media_content=images,
    )


def _looks_like_json(content: bytes, content_type: str) -> bool:
    if "json" in content_type.lower():
        return True
    return content.lstrip()[:1] == b"{"


def parse_feed(content: bytes, url: str = "", content_type: str = "") -> list[RawItem]:
    """Parse a feed document (RSS, Atom or JSON Feed) into RawItems.

    Args:
        content: Raw response body
        url: Feed URL, for error messages
        content_type: Response Content-Type header, if known

    Returns:
        Items in feed order (may be empty for a valid but empty feed)

    Raises:
        FetchError: If the body is not a recognizable feed
    """
    if _looks_like_json(content, content_type):
        try:
            document = json.loads(content.decode("utf-8-sig"))
        except (UnicodeDecodeError, ValueError) as e:
            raise FetchError(url, f"unparsable JSON feed: {e}") from e
        items = document.get("items") if isinstance(document, dict) else None
        if not isinstance(items, list):
            raise FetchError(url, "JSON document has no items list")
        convert, entries = _json_item_to_item, [item for item in items if isinstance(item, dict)]
    else:
        feed = feedparser.parse(content)
        if not feed.get("version") and not feed.entries:
            reason = feed.get("bozo_exception") or "not an RSS/Atom document"
            raise FetchError(url, f"unparsable feed: {reason}")
        convert, entries = _entry_to_item, feed.entries

    try:
        return [convert(entry) for entry in entries]
    except (TypeError, AttributeError, ValueError, ValidationError) as e:
        raise FetchError(url, f"malformed feed item: {type(e).__name__}: {e}") from e


class FeedFetcher:
    """Retrieves and parses feeds over HTTP.

    Example:
        >>> fetcher = FeedFetcher(timeout=10)
        >>> items = await fetcher.fetch("https://example.com/feed.xml")
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self.timeout = timeout
        self.user_agent = user_agent
        self._ssl = ssl.create_default_context(cafile=certifi.where())

    async def fetch(
        self,
        url: str,
        session: aiohttp.ClientSession | None = None,
    ) -> list[RawItem]:
        """Fetch and parse one feed.

        Args:
            url: Feed URL
            session: Shared session; a private one is created if omitted

        Returns:
            Parsed items in feed order

        Raises:
            FetchError: On network error, timeout, non-2xx status or bad body
        """
        if session is None:
            async with aiohttp.ClientSession() as own_session:
                return await self._fetch(own_session, url)
        return await self._fetch(session, url)

    async def _fetch(self, session: aiohttp.ClientSession, url: str) -> list[RawItem]:
        try:
            async with session.get(
                url,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={
                    "User-Agent": self.user_agent,
                    "Accept": "application/rss+xml, application/atom+xml, application/feed+json, application/xml;q=0.9, */*;q=0.8",
                },
                ssl=self._ssl,
            ) as resp:
                if not 200 <= resp.status < 300:
                    raise FetchError(url, f"HTTP {resp.status}")
                body = await resp.read()
                content_type = resp.headers.get("Content-Type", "")
        except asyncio.TimeoutError as e:
            raise FetchError(url, f"timed out after {self.timeout:g}s") from e
        except aiohttp.ClientError as e:
            raise FetchError(url, f"{type(e).__name__}: {e}") from e

        items = parse_feed(body, url, content_type)
        logger.debug("Feed fetched | url=%s items=%d", url, len(items))
        return items


async def fetch_feed(
    url: str,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    session: aiohttp.ClientSession | None = None,
) -> list[RawItem]:
    """Fetch one feed with a default-configured FeedFetcher."""
    return await FeedFetcher(timeout=timeout).fetch(url, session=session)
