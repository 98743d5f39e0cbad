"""Cluster bookkeeping for near-duplicate articles.

Clusters are created lazily: only when a second article matches one that has
no cluster yet.  They grow monotonically and are never split or deleted here.

Usage:
    clusters = ClusterStore(store)
    stored = store.insert_article(candidate)
    if stored is not None:
        clusters.link(stored, result, matched=history_article)

Concurrent outlet batches can each miss the other's fresh insert and grow two
clusters (or drift a count) for one event.  ``reconcile()`` is the periodic
sweep that puts every ``article_count`` back in line with its members.
"""
from __future__ import annotations

import logging
import random
import string
import time
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Tuple

from chronicle.models import Article, Cluster, DuplicateCheckResult
from chronicle.store import ArticleStore

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_BASE36[r])
    return "".join(reversed(out))


def generate_cluster_id() -> str:
    """``cluster_<ms timestamp, base36>_<6 random base36 chars>``."""
    stamp = _base36(int(time.time() * 1000))
    suffix = "".join(random.choices(_BASE36, k=6))
    return f"cluster_{stamp}_{suffix}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ClusterStore:
    """Turns similar_title / similar_content results into durable links."""

    def __init__(
        self,
        store: ArticleStore,
        id_factory: Callable[[], str] = generate_cluster_id,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self._new_id = id_factory
        self._clock = clock

    def link(
        self,
        candidate: Article,
        result: DuplicateCheckResult,
        matched: Optional[Article] = None,
    ) -> Optional[str]:
        """Attach *candidate* to the matched article's cluster.

        Joins the existing cluster when the match has one, otherwise creates
        a two-member cluster headed by the matched (earlier) article.  Sets
        ``candidate.cluster_id`` (and ``matched.cluster_id`` for a new
        cluster) and returns the cluster id; exact and ``none`` results are a
        no-op returning None.  A *candidate* that is already stored (has an
        id) gets its row linked too.

        Raises StoreError if a write fails; the candidate then stays
        unclustered.
        """
        if not result.is_similar or not result.matched_article_id:
            return None

        now = self._clock()
        if result.cluster_id:
            if candidate.id:
                self.store.set_article_cluster(candidate.id, result.cluster_id)
            self.store.increment_cluster(result.cluster_id, now)
            candidate.cluster_id = result.cluster_id
            logger.info(
                f"[Cluster] Linked to {result.cluster_id} "
                f"({result.similarity_score:.0%} {result.match_type.value}): {candidate.title[:40]}"
            )
            return result.cluster_id

        cluster = Cluster(
            id=self._new_id(),
            main_article_id=result.matched_article_id,
            title=candidate.title,
            article_count=2,
            first_seen_at=now,
            last_updated_at=now,
        )
        self.store.create_cluster(cluster)
        self.store.set_article_cluster(result.matched_article_id, cluster.id)
        if candidate.id:
            self.store.set_article_cluster(candidate.id, cluster.id)
        if matched is not None:
            matched.cluster_id = cluster.id
        candidate.cluster_id = cluster.id
        logger.info(
            f"[Cluster] Created {cluster.id} "
            f"({result.similarity_score:.0%} {result.match_type.value}): {candidate.title[:40]}"
        )
        return cluster.id

    def reconcile(self) -> Dict[str, Tuple[int, int]]:
        """Reset each cluster's article_count to its actual member count.

        Returns ``{cluster_id: (old_count, new_count)}`` for the clusters that
        changed.
        """
        counts = self.store.count_members()
        changed: Dict[str, Tuple[int, int]] = {}
        for cluster in self.store.list_clusters():
            actual = counts.get(cluster.id, 0)
            if actual != cluster.article_count:
                self.store.set_cluster_count(cluster.id, actual)
                changed[cluster.id] = (cluster.article_count, actual)
        logger.info(f"[Cluster] Reconciled {len(changed)} cluster count(s)")
        return changed
