"""Ingestion engine: classify, cluster and persist outlet batches."""
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from chronicle.clusters import ClusterStore
from chronicle.config import ChronicleConfig
from chronicle.dedup import check_duplicate
from chronicle.errors import HistoryUnavailableError, StoreError
from chronicle.models import Article, CandidateArticle
from chronicle.store import ArticleStore
from chronicle.utils import format_duration

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Counters for one outlet batch."""
    source: str
    found: int = 0
    inserted: int = 0
    clustered: int = 0
    skipped: int = 0
    cluster_failures: int = 0
    duration_ms: float = 0.0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IngestEngine:
    """Runs outlet batches against the store.

    Candidates inside one batch are handled strictly in order, and every
    insert is added to the batch's history window, so an outlet's own
    correction minutes later links to its earlier article.  Separate batches
    run in parallel and can miss each other's inserts; see
    ``ClusterStore.reconcile``.
    """

    def __init__(
        self,
        store: ArticleStore,
        config: Optional[ChronicleConfig] = None,
        clusters: Optional[ClusterStore] = None,
        retries: int = 1,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.config = config or ChronicleConfig()
        self.clusters = clusters or ClusterStore(store, clock=clock)
        self.retries = retries
        self._clock = clock

    def load_history(self) -> List[Article]:
        """The history window, most recent first.  Raises HistoryUnavailableError."""
        since = self._clock() - self.config.history_window
        try:
            return self.store.recent_articles(since)
        except HistoryUnavailableError:
            raise
        except StoreError as e:
            raise HistoryUnavailableError(str(e)) from e

    def ingest_batch(self, source: str, candidates: Sequence[CandidateArticle]) -> BatchResult:
        """Classify and write one outlet's candidates sequentially.

        Raises HistoryUnavailableError before touching any candidate if the
        window cannot be read.
        """
        t0 = time.monotonic()
        result = BatchResult(source=source, found=len(candidates))
        history = self.load_history()
        by_id: Dict[str, Article] = {a.id: a for a in history if a.id}
        logger.info(
            f"[Engine] {source}: {len(candidates)} candidates vs {len(history)} articles "
            f"from the last {format_duration(self.config.history_window)}"
        )

        for candidate in candidates:
            check = check_duplicate(candidate, history, self.config.ingest)

            if check.is_exact:
                result.skipped += 1
                logger.debug(f"[Engine] {source}: {check.match_type.value} duplicate skipped: {candidate.title[:40]}")
                continue

            try:
                stored = self.store.insert_article(candidate.to_article())
            except StoreError as e:
                result.skipped += 1
                logger.error(f"[Engine] {source}: insert failed for {candidate.source_url}: {e}")
                continue
            if stored is None:
                result.skipped += 1
                logger.debug(f"[Engine] {source}: already stored: {candidate.source_url}")
                continue
            result.inserted += 1

            if check.is_similar:
                try:
                    if self.clusters.link(stored, check, matched=by_id.get(check.matched_article_id)):
                        result.clustered += 1
                except StoreError as e:
                    # stays standalone; only the link is lost
                    stored.cluster_id = None
                    result.cluster_failures += 1
                    logger.warning(f"[Engine] {source}: cluster link failed, kept standalone: {e}")

            history.insert(0, stored)
            by_id[stored.id] = stored

        result.duration_ms = (time.monotonic() - t0) * 1000
        logger.info(
            f"[Engine] {source}: inserted={result.inserted} clustered={result.clustered} "
            f"skipped={result.skipped} in {result.duration_ms:.0f}ms"
        )
        return result

    def ingest(self, batches: Mapping[str, Sequence[CandidateArticle]]) -> Dict[str, BatchResult]:
        """Run every outlet batch in parallel; failed batches are retried with backoff."""
        results: Dict[str, BatchResult] = {}
        failed: Dict[str, Exception] = {}

        with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
            futures = {pool.submit(self.ingest_batch, src, cands): src for src, cands in batches.items()}
            for future in as_completed(futures):
                src = futures[future]
                try:
                    results[src] = future.result()
                except Exception as e:
                    logger.error(f"[Engine] {src} failed: {e}")
                    failed[src] = e

        # Retry failed batches (sequential, with backoff)
        for src, err in failed.items():
            for attempt in range(1, self.retries + 1):
                time.sleep(2 * attempt)
                try:
                    results[src] = self.ingest_batch(src, batches[src])
                    logger.info(f"[Engine] {src} retry {attempt} succeeded")
                    break
                except Exception as e:
                    logger.error(f"[Engine] {src} retry {attempt} failed: {e}")
                    err = e
            else:
                results[src] = BatchResult(source=src, found=len(batches[src]), error=str(err))

        return results
