"""JSON output."""
import json
from typing import Dict, List, Optional, Sequence, Tuple

from chronicle.engine import BatchResult
from chronicle.models import Article, Cluster, FlaggedArticle


def _article(a: Article) -> dict:
    return {
        "id": a.id,
        "title": a.title,
        "source_url": a.source_url,
        "source_id": a.source_id,
        "published_at": a.published_at.isoformat() if a.published_at else None,
        "title_normalized": a.title_normalized,
        "content_hash": a.content_fingerprint,
        "cluster_id": a.cluster_id,
    }


class JSONFormatter:
    def __init__(self, indent: Optional[int] = 2):
        self.indent = indent

    def _dump(self, data) -> str:
        return json.dumps(data, indent=self.indent, ensure_ascii=False)

    def format(self, articles: Sequence[Article]) -> str:
        return self._dump([_article(a) for a in articles])

    def format_flagged(self, items: Sequence[FlaggedArticle]) -> str:
        return self._dump([{
            **_article(f.article),
            "is_similar_duplicate": f.is_similar_duplicate,
            "similar_to_id": f.similar_to_id,
        } for f in items])

    def format_clusters(self, clusters: Sequence[Tuple[Cluster, List[Article]]]) -> str:
        return self._dump([{
            "id": c.id,
            "main_article_id": c.main_article_id,
            "title": c.title,
            "article_count": c.article_count,
            "first_seen_at": c.first_seen_at.isoformat(),
            "last_updated_at": c.last_updated_at.isoformat(),
            "articles": [_article(a) for a in members],
        } for c, members in clusters])

    def format_ingest(self, results: Dict[str, BatchResult]) -> str:
        return self._dump({src: {
            "found": r.found,
            "inserted": r.inserted,
            "clustered": r.clustered,
            "skipped": r.skipped,
            "cluster_failures": r.cluster_failures,
            "duration_ms": round(r.duration_ms, 1),
            "error": r.error,
        } for src, r in results.items()})
