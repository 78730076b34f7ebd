"""Stored article model."""

from datetime import datetime

from pydantic import Field

from models.feed import NormalizedArticle


class Article(NormalizedArticle):
    """A scored article persisted for one source.

    Immutable once stored; only the retention job removes it. Posts refer
    to articles but never own them.
    """

    id: str
    source_id: str
    relevance_score: float = Field(ge=0.0, le=1.0)
    created_at: datetime | None = None
    source_name: str = ""
