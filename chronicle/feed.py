"""Read-time feed de-duplication.

Runs over a recency-ordered candidate pool (``candidate_pool_size(limit)``
articles from the store) and keeps the first article of every near-duplicate
group.  Greedy and order dependent: a later near-duplicate of an item already
shown is always the one dropped.

Cluster identity is checked first, then title similarity against every
accepted title, so near-duplicates from two clusters that concurrent
ingestion failed to merge are still shown once.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Set

from chronicle.config import FeedConfig
from chronicle.models import Article
from chronicle.similarity import bigram_similarity

logger = logging.getLogger(__name__)


def candidate_pool_size(limit: int, config: Optional[FeedConfig] = None) -> int:
    """How many recent articles to fetch to fill a page of *limit*."""
    config = config or FeedConfig()
    return limit * config.pool_factor


def filter_feed(
    articles: Sequence[Article],
    limit: int,
    config: Optional[FeedConfig] = None,
) -> List[Article]:
    """Prune near-duplicates from *articles* (most recent first).

    An article is skipped when its cluster was already shown or when its
    normalized title scores >= ``config.similarity_threshold`` against any
    accepted title.  Stops once *limit* articles are accepted.
    """
    config = config or FeedConfig()
    shown: List[Article] = []
    shown_clusters: Set[str] = set()
    shown_titles: Dict[str, Optional[datetime]] = {}

    if limit <= 0:
        return shown

    for article in articles:
        if article.cluster_id and article.cluster_id in shown_clusters:
            continue

        key = article.title_normalized
        if key and any(
            bigram_similarity(key, prev) >= config.similarity_threshold
            for prev in shown_titles
        ):
            continue

        shown.append(article)
        if article.cluster_id:
            shown_clusters.add(article.cluster_id)
        if key:
            shown_titles[key] = article.published_at

        if len(shown) >= limit:
            break

    logger.debug(f"[Feed] {len(articles)} candidates → {len(shown)} shown")
    return shown
