import asyncio
import json
from datetime import datetime, timezone

import pytest
from aiohttp import test_utils, web

from errors import FetchError
from feeds import FeedFetcher, fetch_feed, parse_feed, strip_html

RSS = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/">
  <channel>
    <title>Example News</title>
    <link>https://news.example.com</link>
    <description>Tech news</description>
    <item>
      <title>AI startup raises seed round</title>
      <link>https://news.example.com/a</link>
      <description>&lt;p&gt;An &lt;b&gt;AI&lt;/b&gt; startup raised money.&lt;/p&gt;</description>
      <pubDate>Mon, 06 Sep 2021 16:45:00 +0000</pubDate>
      <category>Funding</category>
      <category>AI</category>
      <enclosure url="https://img.example.com/a.jpg" type="image/jpeg" length="0"/>
    </item>
    <item>
      <title>Second story</title>
      <link>https://news.example.com/b</link>
      <description>Plain description</description>
      <media:content url="https://img.example.com/b.png" medium="image"/>
    </item>
    <item>
      <title>No link here</title>
      <description>This item has no link</description>
    </item>
  </channel>
</rss>
"""

ATOM = b"""<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Atom Example</title>
  <id>urn:example:feed</id>
  <updated>2024-01-02T10:00:00Z</updated>
  <entry>
    <title>Atom entry</title>
    <id>urn:example:1</id>
    <link href="https://atom.example.com/1"/>
    <updated>2024-01-02T10:00:00Z</updated>
    <summary>Atom summary</summary>
  </entry>
</feed>
"""


def test_parse_rss_items():
    items = parse_feed(RSS, "https://news.example.com/feed")
    assert len(items) == 3

    first = items[0]
    assert first.title == "AI startup raises seed round"
    assert first.link == "https://news.example.com/a"
    assert first.snippet == "An AI startup raised money."
    assert first.pub_date == datetime(2021, 9, 6, 16, 45, tzinfo=timezone.utc)
    assert first.categories == ["Funding", "AI"]
    assert first.enclosures[0].url == "https://img.example.com/a.jpg"
    assert first.enclosures[0].type == "image/jpeg"

    assert items[1].media_content == ["https://img.example.com/b.png"]
    assert items[2].link is None


def test_parse_atom():
    items = parse_feed(ATOM)
    assert len(items) == 1
    assert items[0].link == "https://atom.example.com/1"
    assert items[0].snippet == "Atom summary"
    assert items[0].pub_date == datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc)


def test_parse_json_feed():
    document = {
        "version": "https://jsonfeed.org/version/1.1",
        "title": "JSON Example",
        "items": [
            {
                "id": "1",
                "url": "https://json.example.com/1",
                "title": "JSON item",
                "content_html": "<p>Body</p>",
                "summary": "Short",
                "date_published": "2024-03-01T08:30:00Z",
                "tags": ["ai", 7],
                "image": "https://img.example.com/j.png",
                "authors": [{"name": "Ada"}],
            }
        ],
    }
    items = parse_feed(json.dumps(document).encode(), content_type="application/feed+json")
    assert len(items) == 1
    item = items[0]
    assert item.link == "https://json.example.com/1"
    assert item.author == "Ada"
    assert item.categories == ["ai", 7]
    assert item.media_content == ["https://img.example.com/j.png"]
    assert item.pub_date == datetime(2024, 3, 1, 8, 30, tzinfo=timezone.utc)


def test_parse_garbage_raises():
    with pytest.raises(FetchError):
        parse_feed(b"this is definitely not a feed", "https://bad.example.com")

    with pytest.raises(FetchError) as excinfo:
        parse_feed(b"{not json", "https://bad.example.com/json")
    assert excinfo.value.url == "https://bad.example.com/json"


def test_json_feed_ignores_wrong_typed_fields():
    body = b'{"items": [{"url": "https://json.example.com/2", "title": 5, "content_html": {"a": 1}, "tags": "ai"}]}'
    [item] = parse_feed(body)
    assert item.link == "https://json.example.com/2"
    assert item.title == ""
    assert item.content == ""
    assert item.categories == []


def test_malformed_item_is_fetch_error(monkeypatch):
    def broken(item):
        raise AttributeError("'int' object has no attribute 'strip'")

    monkeypatch.setattr("feeds._json_item_to_item", broken)
    with pytest.raises(FetchError) as excinfo:
        parse_feed(b'{"items": [{"url": "https://json.example.com/3"}]}', "https://json.example.com/feed.json")
    assert "malformed feed item" in excinfo.value.reason


def test_strip_html():
    assert strip_html("<p>Hello <script>alert(1)</script><b>world</b></p>") == "Hello world"
    assert strip_html("  plain   text ") == "plain text"
    assert strip_html("") == ""


def _serve(handler):
    app = web.Application()
    app.router.add_get("/feed", handler)
    return test_utils.TestServer(app)


def test_fetcher_returns_items_and_sends_user_agent():
    seen = {}

    async def handler(request):
        seen["ua"] = request.headers.get("User-Agent")
        return web.Response(body=RSS, content_type="application/rss+xml")

    async def scenario():
        server = _serve(handler)
        await server.start_server()
        try:
            fetcher = FeedFetcher(timeout=5, user_agent="CuratorTest/1.0")
            return await fetcher.fetch(str(server.make_url("/feed")))
        finally:
            await server.close()

    items = asyncio.run(scenario())
    assert len(items) == 3
    assert seen["ua"] == "CuratorTest/1.0"


def test_fetcher_non_2xx_is_fetch_error():
    async def handler(request):
        return web.Response(status=503, text="down")

    async def scenario():
        server = _serve(handler)
        await server.start_server()
        try:
            await fetch_feed(str(server.make_url("/feed")), timeout=5)
        finally:
            await server.close()

    with pytest.raises(FetchError, match="HTTP 503"):
        asyncio.run(scenario())


def test_fetcher_timeout_is_fetch_error():
    async def handler(request):
        await asyncio.sleep(2)
        return web.Response(body=RSS)

    async def scenario():
        server = _serve(handler)
        await server.start_server()
        try:
            await FeedFetcher(timeout=0.2).fetch(str(server.make_url("/feed")))
        finally:
            await server.close()

    with pytest.raises(FetchError, match="timed out"):
        asyncio.run(scenario())


class _Response:
    status = 200
    headers = {"Content-Type": "application/rss+xml"}

    async def read(self):
        return RSS

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class RecordingSession:
    def __init__(self):
        self.ssl_contexts = []

    def get(self, url, **kwargs):
        self.ssl_contexts.append(kwargs["ssl"])
        return _Response()


def test_fetcher_reuses_one_ssl_context():
    session = RecordingSession()
    fetcher = FeedFetcher(timeout=5)

    async def scenario():
        await fetcher.fetch("https://a.example.com/feed", session=session)
        await fetcher.fetch("https://b.example.com/feed", session=session)

    asyncio.run(scenario())
    first, second = session.ssl_contexts
    assert first is second
