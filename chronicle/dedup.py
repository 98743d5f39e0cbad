"""Duplicate classification for newly fetched articles.

A candidate is compared against the recent-history window (articles
published in the last 48 hours, most recent first) in strict priority order:

1. Exact URL — the outlet re-published the same item.  Wins regardless of
   any textual similarity.
2. Exact content — identical fingerprint over title + body, e.g. syndicated
   wire copy.
3. Similar title — best bigram score against the normalized titles.
4. Similar content — best bigram score against the fingerprint text, only
   when no title matched.

Exact matches are duplicates and get dropped by the caller.  Near matches are
not: another outlet's framing of the same event is kept and linked into a
cluster instead.
"""
import logging
from typing import Callable, Optional, Sequence, Tuple, Union

from chronicle.config import IngestThresholds
from chronicle.fingerprint import content_fingerprint, fingerprint_text
from chronicle.models import Article, CandidateArticle, DuplicateCheckResult, MatchType
from chronicle.normalize import normalize_title
from chronicle.similarity import bigram_similarity

logger = logging.getLogger(__name__)


def _best_match(
    key: str,
    history: Sequence[Article],
    field: Callable[[Article], str],
) -> Tuple[Optional[Article], float]:
    """Highest-scoring history item for *key*; ties keep the earliest in order."""
    best: Optional[Article] = None
    best_score = 0.0
    for existing in history:
        score = bigram_similarity(key, field(existing))
        if score > best_score:
            best, best_score = existing, score
    return best, best_score


def _content_key(article: Article) -> str:
    return fingerprint_text(article.title, article.body)


def check_duplicate(
    candidate: Union[CandidateArticle, Article],
    history: Sequence[Article],
    thresholds: Optional[IngestThresholds] = None,
) -> DuplicateCheckResult:
    """Classify *candidate* against *history*.

    Args:
        candidate: The new record.  Only title, body and source_url are read.
        history: Existing articles in the window, most recent first.
        thresholds: Title/content similarity cut-offs (default 0.60/0.50).

    Returns:
        A DuplicateCheckResult.  An empty history always yields ``none``.
    """
    thresholds = thresholds or IngestThresholds()
    if not history:
        return DuplicateCheckResult()

    # Tier 1: exact URL
    if candidate.source_url:
        for existing in history:
            if existing.source_url == candidate.source_url:
                logger.debug(f"[Dedup] exact_url → {existing.id}: {candidate.title[:40]}")
                return DuplicateCheckResult(
                    is_duplicate=True,
                    match_type=MatchType.EXACT_URL,
                    matched_article_id=existing.id,
                    cluster_id=existing.cluster_id,
                )

    # Tier 2: exact content
    fp = content_fingerprint(candidate.title, candidate.body)
    for existing in history:
        if existing.content_fingerprint and existing.content_fingerprint == fp:
            logger.debug(f"[Dedup] exact_content → {existing.id}: {candidate.title[:40]}")
            return DuplicateCheckResult(
                is_duplicate=True,
                match_type=MatchType.EXACT_CONTENT,
                matched_article_id=existing.id,
                cluster_id=existing.cluster_id,
            )

    # Tier 3: similar title (empty keys never match)
    title_key = normalize_title(candidate.title)
    if title_key:
        match, score = _best_match(title_key, history, lambda a: a.title_normalized)
        if match is not None and score >= thresholds.title_similarity:
            logger.debug(f"[Dedup] similar_title {score:.2f} → {match.id}: {candidate.title[:40]}")
            return DuplicateCheckResult(
                match_type=MatchType.SIMILAR_TITLE,
                similarity_score=score,
                matched_article_id=match.id,
                cluster_id=match.cluster_id,
            )

    # Tier 4: similar content
    text = fingerprint_text(candidate.title, candidate.body)
    if text:
        match, score = _best_match(text, history, _content_key)
        if match is not None and score >= thresholds.content_similarity:
            logger.debug(f"[Dedup] similar_content {score:.2f} → {match.id}: {candidate.title[:40]}")
            return DuplicateCheckResult(
                match_type=MatchType.SIMILAR_CONTENT,
                similarity_score=score,
                matched_article_id=match.id,
                cluster_id=match.cluster_id,
            )

    return DuplicateCheckResult()
