"""Data models for Chronicle."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from chronicle.fingerprint import content_fingerprint
from chronicle.normalize import normalize_title


def _utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps as UTC so window arithmetic never mixes kinds."""
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass
class Article:
    """A persisted article, or the subset of it the engine reads and writes."""
    title: str
    source_url: str
    source_id: str = ""
    published_at: Optional[datetime] = None
    content: str = ""
    summary: str = ""
    id: Optional[str] = None  # assigned by the store
    original_id: str = ""  # the outlet's own identifier
    title_normalized: str = ""
    content_fingerprint: str = ""
    cluster_id: Optional[str] = None

    def __post_init__(self):
        self.title = self.title or ""
        self.content = self.content or ""
        self.summary = self.summary or ""
        self.published_at = _utc(self.published_at)
        if not self.title_normalized:
            self.title_normalized = normalize_title(self.title)
        if not self.content_fingerprint:
            self.content_fingerprint = content_fingerprint(self.title, self.body)

    @property
    def body(self) -> str:
        """Content if present, else the summary."""
        return self.content or self.summary or ""

    @property
    def dedup_key(self) -> str:
        """Uniqueness key the store enforces (outlet + the outlet's own id)."""
        return f"{self.source_id}|{self.original_id or self.source_url}"


@dataclass
class CandidateArticle:
    """A freshly fetched record from an outlet adapter, not yet persisted."""
    title: str
    source_url: str
    content: str = ""
    source_id: str = ""
    published_at: Optional[datetime] = None
    summary: str = ""
    original_id: str = ""

    def __post_init__(self):
        # outlet adapters hand over None for missing fields
        self.title = self.title or ""
        self.content = self.content or ""
        self.summary = self.summary or ""
        self.published_at = _utc(self.published_at)

    @property
    def body(self) -> str:
        return self.content or self.summary or ""

    def to_article(self, cluster_id: Optional[str] = None) -> Article:
        return Article(
            title=self.title,
            source_url=self.source_url,
            source_id=self.source_id,
            published_at=self.published_at or datetime.now(timezone.utc),
            content=self.content,
            summary=self.summary,
            original_id=self.original_id,
            cluster_id=cluster_id,
        )


@dataclass
class Cluster:
    """A durable group of near-duplicate articles."""
    id: str
    main_article_id: str
    title: str
    article_count: int = 2
    first_seen_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class MatchType(str, Enum):
    EXACT_URL = "exact_url"
    EXACT_CONTENT = "exact_content"
    SIMILAR_TITLE = "similar_title"
    SIMILAR_CONTENT = "similar_content"
    NONE = "none"


@dataclass
class DuplicateCheckResult:
    """Outcome of classifying one candidate against the history window."""
    is_duplicate: bool = False
    match_type: MatchType = MatchType.NONE
    similarity_score: float = 0.0
    matched_article_id: Optional[str] = None
    cluster_id: Optional[str] = None

    @property
    def is_exact(self) -> bool:
        return self.match_type in (MatchType.EXACT_URL, MatchType.EXACT_CONTENT)

    @property
    def is_similar(self) -> bool:
        return self.match_type in (MatchType.SIMILAR_TITLE, MatchType.SIMILAR_CONTENT)


@dataclass
class FlaggedArticle:
    """An article annotated by the source-priority flagger."""
    article: Article
    is_similar_duplicate: bool = False
    similar_to_id: Optional[str] = None

    @property
    def id(self) -> Optional[str]:
        return self.article.id

    @property
    def source_id(self) -> str:
        return self.article.source_id
