"""Keyword relevance scoring.

Algorithm:
    1. Lowercase haystack of title + summary + content
    2. Any excluded keyword present (substring) -> 0.0, no partial credit
    3. Each keyword contributes its occurrence count, capped at 3
    4. score = min(1, matches / (3 * keyword_count)); no keywords -> 0.5

Blank keywords are ignored entirely and do not count towards keyword_count.
"""

from models.feed import NormalizedArticle

MAX_MATCHES_PER_KEYWORD = 3
NEUTRAL_SCORE = 0.5


def _clean(keywords: list[str] | None) -> list[str]:
    return [k.strip().lower() for k in keywords or [] if k and k.strip()]


def haystack(article: NormalizedArticle) -> str:
    """Lowercased text an article is scored against."""
    return article.text().lower()


def score_text(text: str, keywords: list[str], excluded_keywords: list[str] | None = None) -> float:
    """Score already-combined text against keyword sets."""
    text = text.lower()

    for excluded in _clean(excluded_keywords):
        if excluded in text:
            return 0.0

    terms = _clean(keywords)
    if not terms:
        return NEUTRAL_SCORE

    matches = sum(min(text.count(term), MAX_MATCHES_PER_KEYWORD) for term in terms)
    return min(1.0, matches / (len(terms) * MAX_MATCHES_PER_KEYWORD))


def score(
    article: NormalizedArticle,
    keywords: list[str],
    excluded_keywords: list[str] | None = None,
) -> float:
    """Relevance of an article to a brand profile, in [0, 1].

    Example:
        >>> score(article, ["ai"], [])  # "ai" appears five times
        1.0
    """
    return score_text(haystack(article), keywords, excluded_keywords)
