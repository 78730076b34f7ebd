"""Publishing of due scheduled posts.

SCHEDULED posts whose send time has passed are handed to a Publisher and
moved to PUBLISHED (with platform_post_id and published_at) or FAILED.

The shipped WebhookPublisher POSTs a JSON payload per post to a configured
endpoint, which is expected to relay it to the platform. Platform API
clients are out of scope; anything implementing the Publisher protocol
can replace it.

Webhook Payload:
    {"type": "scheduled_post", "post_id": ..., "platform": ..., "username": ...,
     "content": ..., "hashtags": [...], "media_urls": [...], "scheduled_for": ...}

Response (optional JSON): {"platform_post_id": ..., "url": ...}
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

import aiohttp

from database import Database
from errors import PostStateError, PublishError
from models.post import Post, PostStatus
from models.profile import SocialAccount

logger = logging.getLogger(__name__)


@dataclass
class PublishReceipt:
    """Platform acknowledgement of a published post."""

    platform_post_id: str
    url: str = ""


class Publisher(Protocol):
    """Sends one post to its platform account."""

    async def publish(self, post: Post, account: SocialAccount) -> PublishReceipt: ...


class WebhookPublisher:
    """Relays posts to a webhook endpoint.

    Args:
        url: Endpoint receiving the JSON payload
        timeout: Per-request timeout in seconds
    """

    def __init__(self, url: str, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout

    def _payload(self, post: Post, account: SocialAccount) -> dict[str, Any]:
        return {
            "type": "scheduled_post",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "post_id": post.id,
            "platform": account.platform.value,
            "username": account.username,
            "content": post.content,
            "hashtags": post.hashtags,
            "media_urls": post.media_urls,
            "scheduled_for": post.scheduled_for.isoformat() if post.scheduled_for else None,
        }

    async def publish(self, post: Post, account: SocialAccount) -> PublishReceipt:
        """POST the post to the webhook.

        Raises:
            PublishError: On timeout, connection error or non-2xx status
        """
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.url,
                    json=self._payload(post, account),
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as resp:
                    if resp.status >= 300:
                        raise PublishError(f"Webhook returned HTTP {resp.status}")
                    try:
                        body = await resp.json(content_type=None)
                    except ValueError:
                        body = None
        except asyncio.TimeoutError as e:
            raise PublishError(f"Webhook timed out after {self.timeout:g}s") from e
        except aiohttp.ClientError as e:
            raise PublishError(f"Webhook error: {type(e).__name__}: {e}") from e

        if not isinstance(body, dict):
            body = {}
        return PublishReceipt(
            platform_post_id=str(body.get("platform_post_id") or f"webhook-{post.id}"),
            url=str(body.get("url") or ""),
        )


@dataclass
class PublishResult:
    """Outcome of one publishing run."""

    published: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    duration: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "published": len(self.published),
            "failed": len(self.failed),
            "errors": self.failed,
            "duration": round(self.duration, 2),
        }


async def publish_due_posts(
    db: Database,
    publisher: Publisher,
    now: datetime | None = None,
    limit: int = 50,
) -> PublishResult:
    """Publish every due SCHEDULED post, one at a time.

    A failing post is marked FAILED; the rest of the batch continues.
    """
    start = time.time()
    now = now or datetime.now(timezone.utc)
    result = PublishResult()

    posts = db.find_due_posts(now, limit=limit)
    if posts:
        logger.info("Publishing started | due=%d", len(posts))

    for post in posts:
        try:
            account = db.get_social_account(post.social_account_id)
            if account is None or not account.is_active:
                raise PublishError(f"Social account unavailable: {post.social_account_id}")
            receipt = await publisher.publish(post, account)
        except Exception as e:
            result.failed[post.id] = f"{type(e).__name__}: {e}"
            logger.warning("Post publish failed | post=%s error=%s", post.id, e)
            try:
                db.update_post_status(post.id, PostStatus.FAILED, now)
            except PostStateError as state_error:
                logger.error("Could not mark post failed | post=%s error=%s", post.id, state_error)
            continue

        db.update_post_status(
            post.id,
            PostStatus.PUBLISHED,
            now,
            published_at=now,
            platform_post_id=receipt.platform_post_id,
        )
        result.published.append(post.id)
        logger.info("Post published | post=%s platform_id=%s", post.id, receipt.platform_post_id)

    result.duration = time.time() - start
    if posts:
        logger.info(
            "Publishing done | published=%d failed=%d",
            len(result.published), len(result.failed),
        )
    return result
