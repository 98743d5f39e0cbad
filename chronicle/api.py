"""Public Python API for Chronicle — use as a library.

Quick start:

    from chronicle.api import ingest, feed, flagged
    from chronicle.models import CandidateArticle

    results = ingest({"HK01": [CandidateArticle(title=..., source_url=...)]},
                     database_url="sqlite:///news.db")
    for a in feed(limit=20, database_url="sqlite:///news.db"):
        print(a.title, a.source_url)

    for f in flagged(limit=50, database_url="sqlite:///news.db"):
        if f.is_similar_duplicate:
            print(f.article.title, "→ duplicate of", f.similar_to_id)

Every call takes either an open ``store`` or a ``database_url``; with neither
it uses the URL from ``config`` (default: ~/.cache/chronicle/chronicle.db).
"""
from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence

from chronicle.clusters import ClusterStore
from chronicle.config import ChronicleConfig
from chronicle.engine import BatchResult, IngestEngine
from chronicle.feed import candidate_pool_size, filter_feed
from chronicle.flagger import flag_duplicates
from chronicle.models import Article, CandidateArticle, FlaggedArticle
from chronicle.store import ArticleStore, open_store


def _resolve(
    store: Optional[ArticleStore],
    database_url: Optional[str],
    config: Optional[ChronicleConfig],
):
    config = config or ChronicleConfig()
    if store is None:
        store = open_store(database_url or config.database_url)
    return store, config


def ingest(
    batches: Mapping[str, Sequence[CandidateArticle]],
    *,
    store: Optional[ArticleStore] = None,
    database_url: Optional[str] = None,
    config: Optional[ChronicleConfig] = None,
    retries: int = 1,
) -> Dict[str, BatchResult]:
    """Ingest ``{source_id: [candidates]}``, one batch per outlet.

    Returns a BatchResult per outlet; a batch whose history window could not
    be read carries ``error`` and wrote nothing.
    """
    store, config = _resolve(store, database_url, config)
    return IngestEngine(store, config=config, retries=retries).ingest(batches)


def feed(
    limit: int = 50,
    *,
    store: Optional[ArticleStore] = None,
    database_url: Optional[str] = None,
    config: Optional[ChronicleConfig] = None,
) -> List[Article]:
    """Latest articles with near-duplicates removed (at most *limit*)."""
    store, config = _resolve(store, database_url, config)
    pool = store.latest_articles(candidate_pool_size(limit, config.feed))
    return filter_feed(pool, limit, config.feed)


def flagged(
    limit: int = 50,
    offset: int = 0,
    *,
    store: Optional[ArticleStore] = None,
    database_url: Optional[str] = None,
    config: Optional[ChronicleConfig] = None,
) -> List[FlaggedArticle]:
    """One admin page of articles with duplicate annotations."""
    store, config = _resolve(store, database_url, config)
    page = store.latest_articles(limit, offset)
    return flag_duplicates(page, config.flagger)


def related(
    article_id: str,
    limit: int = 6,
    *,
    store: Optional[ArticleStore] = None,
    database_url: Optional[str] = None,
    config: Optional[ChronicleConfig] = None,
) -> List[Article]:
    """Other outlets' coverage of the same story: the article's cluster
    members, most recent first, excluding the article itself."""
    store, config = _resolve(store, database_url, config)
    article = store.get_article(article_id)
    if article is None or not article.cluster_id:
        return []
    members = [a for a in store.cluster_members(article.cluster_id) if a.id != article_id]
    members.reverse()
    return members[:limit]


def reconcile(
    *,
    store: Optional[ArticleStore] = None,
    database_url: Optional[str] = None,
    config: Optional[ChronicleConfig] = None,
) -> Dict[str, tuple]:
    """Repair cluster article counts; returns ``{cluster_id: (old, new)}``."""
    store, config = _resolve(store, database_url, config)
    return ClusterStore(store).reconcile()
