"""Exception taxonomy for the ingestion and generation jobs.

None of these escape a scheduled tick. Each is caught at the level that
owns the unit of work (source, feed item, article, post) and turned into
a logged, counted outcome.
"""


class CuratorError(Exception):
    """Base class for all curator errors."""


class FetchError(CuratorError):
    """Feed could not be retrieved or parsed (network, timeout, status, body)."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class ItemProcessingError(CuratorError):
    """A single feed item could not be normalized or scored."""


class PersistenceConflict(CuratorError):
    """An article with the same url_hash was stored concurrently."""

    def __init__(self, url_hash: str):
        super().__init__(f"Article already stored: {url_hash}")
        self.url_hash = url_hash


class GenerationUnavailable(CuratorError):
    """The AI content provider is missing or failed."""


class PostCreationError(CuratorError):
    """A candidate article could not be turned into a scheduled post."""


class PublishError(CuratorError):
    """A platform or webhook rejected a post."""


class PostStateError(CuratorError):
    """Illegal post status transition or deletion."""


class JobError(CuratorError):
    """Unknown job name, or a manual trigger while the job is running."""
