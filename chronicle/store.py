"""Article and cluster persistence.

The engine only talks to the ArticleStore interface.  Two implementations
ship with Chronicle:

  - MemoryStore — thread-safe, in-process; used by tests and one-off runs.
  - SQLStore    — SQLAlchemy-backed; any database URL SQLAlchemy accepts.

Layout (SQLStore):

    articles       id, source_id, original_id, source_url, title,
                   title_normalized, content, summary, content_hash,
                   cluster_id, published_at
                   UNIQUE (source_id, original_id)
    news_clusters  id, main_article_id, title, article_count,
                   first_seen_at, last_updated_at
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from sqlalchemy import (
    Column, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint,
    create_engine, func, select, update,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from chronicle.errors import HistoryUnavailableError, StoreError
from chronicle.models import Article, Cluster

logger = logging.getLogger(__name__)


class ArticleStore(ABC):
    """Query and write interface the dedup engine depends on.

    Every failing call raises StoreError (HistoryUnavailableError for the
    history read).
    """

    @abstractmethod
    def recent_articles(self, since: datetime) -> List[Article]:
        """Articles with published_at >= since, most recent first."""

    @abstractmethod
    def latest_articles(self, limit: int, offset: int = 0) -> List[Article]:
        """One page of articles, most recent first."""

    @abstractmethod
    def get_article(self, article_id: str) -> Optional[Article]:
        ...

    @abstractmethod
    def insert_article(self, article: Article) -> Optional[Article]:
        """Insert if absent.  Returns the stored copy (with id) or None if the
        (source_id, original_id) pair already exists."""

    @abstractmethod
    def set_article_cluster(self, article_id: str, cluster_id: str) -> None:
        ...

    @abstractmethod
    def create_cluster(self, cluster: Cluster) -> None:
        ...

    @abstractmethod
    def increment_cluster(self, cluster_id: str, at: datetime) -> None:
        """article_count += 1 and last_updated_at = at."""

    @abstractmethod
    def set_cluster_count(self, cluster_id: str, count: int) -> None:
        ...

    @abstractmethod
    def get_cluster(self, cluster_id: str) -> Optional[Cluster]:
        ...

    @abstractmethod
    def list_clusters(self, limit: Optional[int] = None) -> List[Cluster]:
        """Clusters, most recently created first."""

    @abstractmethod
    def cluster_members(self, cluster_id: str) -> List[Article]:
        """Articles linked to a cluster, oldest first."""

    def count_members(self) -> Dict[str, int]:
        """{cluster_id: member count} for every cluster with members."""
        counts = {c.id: len(self.cluster_members(c.id)) for c in self.list_clusters()}
        return {cid: n for cid, n in counts.items() if n}


def _sort_key(a: Article):
    return a.published_at or datetime.min.replace(tzinfo=timezone.utc)


class MemoryStore(ArticleStore):
    """In-process store guarded by one lock."""

    def __init__(self):
        self._lock = threading.Lock()
        self._articles: Dict[str, Article] = {}
        self._keys: Dict[str, str] = {}
        self._clusters: Dict[str, Cluster] = {}
        self._next_id = 1

    def recent_articles(self, since: datetime) -> List[Article]:
        with self._lock:
            rows = [replace(a) for a in self._articles.values()
                    if a.published_at is not None and a.published_at >= since]
        rows.sort(key=_sort_key, reverse=True)
        return rows

    def latest_articles(self, limit: int, offset: int = 0) -> List[Article]:
        with self._lock:
            rows = [replace(a) for a in self._articles.values()]
        rows.sort(key=_sort_key, reverse=True)
        return rows[offset:offset + limit]

    def get_article(self, article_id: str) -> Optional[Article]:
        with self._lock:
            a = self._articles.get(article_id)
            return replace(a) if a else None

    def insert_article(self, article: Article) -> Optional[Article]:
        with self._lock:
            if article.dedup_key in self._keys:
                return None
            stored = replace(article, id=str(self._next_id))
            self._next_id += 1
            self._articles[stored.id] = stored
            self._keys[stored.dedup_key] = stored.id
            return replace(stored)

    def set_article_cluster(self, article_id: str, cluster_id: str) -> None:
        with self._lock:
            if article_id not in self._articles:
                raise StoreError(f"article {article_id} not found")
            if cluster_id not in self._clusters:
                raise StoreError(f"cluster {cluster_id} not found")
            self._articles[article_id].cluster_id = cluster_id

    def create_cluster(self, cluster: Cluster) -> None:
        with self._lock:
            if cluster.id in self._clusters:
                raise StoreError(f"cluster {cluster.id} already exists")
            self._clusters[cluster.id] = replace(cluster)

    def increment_cluster(self, cluster_id: str, at: datetime) -> None:
        with self._lock:
            c = self._clusters.get(cluster_id)
            if c is None:
                raise StoreError(f"cluster {cluster_id} not found")
            c.article_count += 1
            c.last_updated_at = at

    def set_cluster_count(self, cluster_id: str, count: int) -> None:
        with self._lock:
            c = self._clusters.get(cluster_id)
            if c is None:
                raise StoreError(f"cluster {cluster_id} not found")
            c.article_count = count

    def get_cluster(self, cluster_id: str) -> Optional[Cluster]:
        with self._lock:
            c = self._clusters.get(cluster_id)
            return replace(c) if c else None

    def list_clusters(self, limit: Optional[int] = None) -> List[Cluster]:
        with self._lock:
            rows = [replace(c) for c in self._clusters.values()]
        rows.sort(key=lambda c: c.first_seen_at, reverse=True)
        return rows[:limit] if limit is not None else rows

    def cluster_members(self, cluster_id: str) -> List[Article]:
        with self._lock:
            rows = [replace(a) for a in self._articles.values() if a.cluster_id == cluster_id]
        rows.sort(key=_sort_key)
        return rows


# ── SQLAlchemy store ──────────────────────────────────────────────────

Base = declarative_base()


class ClusterRow(Base):
    __tablename__ = "news_clusters"

    id = Column(String, primary_key=True)
    main_article_id = Column(String, nullable=False)
    title = Column(Text, nullable=False)
    article_count = Column(Integer, nullable=False, default=1)
    first_seen_at = Column(DateTime(timezone=True), nullable=False)
    last_updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_news_clusters_main", "main_article_id"),
    )


class ArticleRow(Base):
    __tablename__ = "articles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source_id = Column(String, nullable=False)
    original_id = Column(String, nullable=False)
    source_url = Column(Text, nullable=False)
    title = Column(Text, nullable=False)
    title_normalized = Column(Text, nullable=False, default="")
    content = Column(Text)
    summary = Column(Text)
    content_hash = Column(String(32))
    cluster_id = Column(String, ForeignKey("news_clusters.id"), nullable=True)
    published_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("source_id", "original_id", name="uq_articles_source_original"),
        Index("idx_articles_published", "published_at"),
        Index("idx_articles_source_url", "source_url"),
        Index("idx_articles_title_normalized", "title_normalized"),
        Index("idx_articles_content_hash", "content_hash"),
        Index("idx_articles_cluster", "cluster_id"),
    )


def _row_to_article(row: ArticleRow) -> Article:
    return Article(
        id=str(row.id),
        title=row.title,
        source_url=row.source_url,
        source_id=row.source_id,
        original_id=row.original_id,
        published_at=row.published_at,
        content=row.content or "",
        summary=row.summary or "",
        title_normalized=row.title_normalized or "",
        content_fingerprint=row.content_hash or "",
        cluster_id=row.cluster_id,
    )


def _row_to_cluster(row: ClusterRow) -> Cluster:
    return Cluster(
        id=row.id,
        main_article_id=row.main_article_id,
        title=row.title,
        article_count=row.article_count,
        first_seen_at=_aware(row.first_seen_at),
        last_updated_at=_aware(row.last_updated_at),
    )


def _aware(dt: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands timestamps back naive; everything is written as UTC.
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _to_utc(dt: Optional[datetime]) -> Optional[datetime]:
    return _aware(dt).astimezone(timezone.utc) if dt is not None else None


class SQLStore(ArticleStore):
    """SQLAlchemy-backed store.  Tables are created on first use."""

    def __init__(self, database_url: str, echo: bool = False):
        connect_args = {}
        if database_url.startswith("sqlite:///"):
            connect_args["check_same_thread"] = False
            db_path = database_url[len("sqlite:///"):]
            if db_path and db_path != ":memory:":
                path = Path(db_path).expanduser()
                path.parent.mkdir(parents=True, exist_ok=True)
                database_url = f"sqlite:///{path}"
        self.database_url = database_url
        self.engine = create_engine(database_url, echo=echo, connect_args=connect_args)
        self._session_factory = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StoreError(f"cannot initialise store at {database_url}: {e}") from e
        logger.debug(f"[Store] Opened {database_url}")

    def _session(self):
        return self._session_factory()

    def recent_articles(self, since: datetime) -> List[Article]:
        try:
            with self._session() as session:
                rows = session.scalars(
                    select(ArticleRow)
                    .where(ArticleRow.published_at >= _to_utc(since))
                    .order_by(ArticleRow.published_at.desc(), ArticleRow.id.desc())
                ).all()
                return [_row_to_article(r) for r in rows]
        except SQLAlchemyError as e:
            raise HistoryUnavailableError(f"history query failed: {e}") from e

    def latest_articles(self, limit: int, offset: int = 0) -> List[Article]:
        try:
            with self._session() as session:
                rows = session.scalars(
                    select(ArticleRow)
                    .order_by(ArticleRow.published_at.desc(), ArticleRow.id.desc())
                    .limit(limit)
                    .offset(offset)
                ).all()
                return [_row_to_article(r) for r in rows]
        except SQLAlchemyError as e:
            raise StoreError(f"article query failed: {e}") from e

    def get_article(self, article_id: str) -> Optional[Article]:
        if not str(article_id).isdigit():
            return None
        try:
            with self._session() as session:
                row = session.get(ArticleRow, int(article_id))
                return _row_to_article(row) if row else None
        except SQLAlchemyError as e:
            raise StoreError(f"article lookup failed: {e}") from e

    def insert_article(self, article: Article) -> Optional[Article]:
        original_id = article.original_id or article.source_url
        try:
            with self._session() as session, session.begin():
                exists = session.scalar(
                    select(ArticleRow.id).where(
                        ArticleRow.source_id == article.source_id,
                        ArticleRow.original_id == original_id,
                    )
                )
                if exists is not None:
                    return None
                row = ArticleRow(
                    source_id=article.source_id,
                    original_id=original_id,
                    source_url=article.source_url,
                    title=article.title,
                    title_normalized=article.title_normalized,
                    content=article.content,
                    summary=article.summary,
                    content_hash=article.content_fingerprint,
                    cluster_id=article.cluster_id,
                    published_at=_to_utc(article.published_at) or datetime.now(timezone.utc),
                )
                session.add(row)
                session.flush()
                return _row_to_article(row)
        except IntegrityError:
            # lost an insert race on (source_id, original_id)
            return None
        except SQLAlchemyError as e:
            raise StoreError(f"article insert failed: {e}") from e

    def set_article_cluster(self, article_id: str, cluster_id: str) -> None:
        if not str(article_id).isdigit():
            raise StoreError(f"article {article_id} not found")
        self._execute_update(
            update(ArticleRow).where(ArticleRow.id == int(article_id)).values(cluster_id=cluster_id),
            f"article {article_id}",
        )

    def create_cluster(self, cluster: Cluster) -> None:
        try:
            with self._session() as session, session.begin():
                session.add(ClusterRow(
                    id=cluster.id,
                    main_article_id=cluster.main_article_id,
                    title=cluster.title,
                    article_count=cluster.article_count,
                    first_seen_at=_to_utc(cluster.first_seen_at),
                    last_updated_at=_to_utc(cluster.last_updated_at),
                ))
        except SQLAlchemyError as e:
            raise StoreError(f"cluster insert failed: {e}") from e

    def increment_cluster(self, cluster_id: str, at: datetime) -> None:
        self._execute_update(
            update(ClusterRow)
            .where(ClusterRow.id == cluster_id)
            .values(article_count=ClusterRow.article_count + 1, last_updated_at=_to_utc(at)),
            f"cluster {cluster_id}",
        )

    def set_cluster_count(self, cluster_id: str, count: int) -> None:
        self._execute_update(
            update(ClusterRow).where(ClusterRow.id == cluster_id).values(article_count=count),
            f"cluster {cluster_id}",
        )

    def _execute_update(self, stmt, what: str) -> None:
        try:
            with self._session() as session, session.begin():
                result = session.execute(stmt)
                if result.rowcount == 0:
                    raise StoreError(f"{what} not found")
        except SQLAlchemyError as e:
            raise StoreError(f"update of {what} failed: {e}") from e

    def get_cluster(self, cluster_id: str) -> Optional[Cluster]:
        try:
            with self._session() as session:
                row = session.get(ClusterRow, cluster_id)
                return _row_to_cluster(row) if row else None
        except SQLAlchemyError as e:
            raise StoreError(f"cluster lookup failed: {e}") from e

    def list_clusters(self, limit: Optional[int] = None) -> List[Cluster]:
        try:
            with self._session() as session:
                stmt = select(ClusterRow).order_by(ClusterRow.first_seen_at.desc())
                if limit is not None:
                    stmt = stmt.limit(limit)
                return [_row_to_cluster(r) for r in session.scalars(stmt).all()]
        except SQLAlchemyError as e:
            raise StoreError(f"cluster query failed: {e}") from e

    def cluster_members(self, cluster_id: str) -> List[Article]:
        try:
            with self._session() as session:
                rows = session.scalars(
                    select(ArticleRow)
                    .where(ArticleRow.cluster_id == cluster_id)
                    .order_by(ArticleRow.published_at, ArticleRow.id)
                ).all()
                return [_row_to_article(r) for r in rows]
        except SQLAlchemyError as e:
            raise StoreError(f"member query failed: {e}") from e

    def count_members(self) -> Dict[str, int]:
        """{cluster_id: member count} in one query."""
        try:
            with self._session() as session:
                rows = session.execute(
                    select(ArticleRow.cluster_id, func.count(ArticleRow.id))
                    .where(ArticleRow.cluster_id.is_not(None))
                    .group_by(ArticleRow.cluster_id)
                ).all()
                return {cid: n for cid, n in rows}
        except SQLAlchemyError as e:
            raise StoreError(f"member count failed: {e}") from e


def open_store(database_url: Optional[str]) -> ArticleStore:
    """MemoryStore for ``memory://`` (or None), SQLStore for anything else."""
    if not database_url or database_url == "memory://":
        return MemoryStore()
    return SQLStore(database_url)
