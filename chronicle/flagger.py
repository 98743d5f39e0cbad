"""Source-priority duplicate flagging for the admin listing.

Within one page of articles, every pair published within the flag window
(default ±6h) that shares a cluster or has title similarity >= the threshold
is a match.  The article from the lower-priority source (higher rank number;
unranked sources rank last) is flagged ``is_similar_duplicate`` with
``similar_to_id`` pointing at the other one.  Equal ranks flag nothing.

Flagged articles are never used as a comparison source afterwards, so every
pointer is one hop; there are no chains to follow.
"""
import logging
from typing import List, Optional, Sequence

from chronicle.config import FlaggerConfig
from chronicle.models import Article, FlaggedArticle
from chronicle.priority import source_rank
from chronicle.similarity import bigram_similarity

logger = logging.getLogger(__name__)


def _within_window(a: Article, b: Article, config: FlaggerConfig) -> bool:
    if a.published_at is None or b.published_at is None:
        return False
    return abs(a.published_at - b.published_at) <= config.window


def _is_match(a: Article, b: Article, config: FlaggerConfig) -> bool:
    if a.cluster_id and a.cluster_id == b.cluster_id:
        return True
    if a.title_normalized and b.title_normalized:
        return bigram_similarity(a.title_normalized, b.title_normalized) >= config.similarity_threshold
    return False


def flag_duplicates(
    articles: Sequence[Article],
    config: Optional[FlaggerConfig] = None,
) -> List[FlaggedArticle]:
    """Annotate one page of *articles*; output order matches input order."""
    config = config or FlaggerConfig()
    items = [FlaggedArticle(article=a) for a in articles]
    ranks = [source_rank(f.source_id, config.priorities, config.default_rank) for f in items]

    # Most trusted sources act as comparison sources first, so a flagged
    # article never becomes the target of another flag.
    order = sorted(range(len(items)), key=lambda k: ranks[k])

    for i in order:
        current = items[i]
        if current.is_similar_duplicate:
            continue
        for j in order:
            other = items[j]
            if i == j or other.is_similar_duplicate:
                continue
            if not _within_window(current.article, other.article, config):
                continue
            if not _is_match(current.article, other.article, config):
                continue

            if ranks[i] > ranks[j]:
                current.is_similar_duplicate = True
                current.similar_to_id = other.id
                break
            if ranks[j] > ranks[i]:
                other.is_similar_duplicate = True
                other.similar_to_id = current.id

    flagged = sum(1 for f in items if f.is_similar_duplicate)
    logger.debug(f"[Flagger] {flagged}/{len(items)} flagged as similar duplicates")
    return items
