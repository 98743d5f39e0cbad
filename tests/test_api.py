"""Tests for the public Python API."""
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from chronicle import api
from chronicle.config import ChronicleConfig, FeedConfig
from chronicle.models import Article, CandidateArticle, Cluster

NOW = datetime.now(timezone.utc)


def _candidate(title, url, source, minutes=0):
    return CandidateArticle(title=title, source_url=url, source_id=source,
                            published_at=NOW - timedelta(minutes=60 - minutes))


def _seed_cluster(store):
    a = store.insert_article(Article(title="A", source_url="https://a/1", source_id="HK01",
                                     published_at=NOW - timedelta(hours=2)))
    store.create_cluster(Cluster(id="c1", main_article_id=a.id, title="A"))
    store.set_article_cluster(a.id, "c1")
    b = store.insert_article(Article(title="B", source_url="https://b/1", source_id="RTHK",
                                     published_at=NOW - timedelta(hours=1), cluster_id="c1"))
    c = store.insert_article(Article(title="C", source_url="https://c/1", source_id="Yahoo",
                                     published_at=NOW, cluster_id="c1"))
    return a, b, c


class TestIngest:
    def test_ingest_and_feed(self, store):
        results = api.ingest({
            "HK01": [_candidate("Typhoon signal No 8 issued", "https://hk01/1", "HK01")],
            "RTHK": [_candidate("Stock market closes higher", "https://rthk/1", "RTHK", minutes=5)],
        }, store=store)
        assert all(r.inserted == 1 for r in results.values())
        assert len(api.feed(10, store=store)) == 2

    def test_database_url(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'api.db'}"
        api.ingest({"HK01": [_candidate("Typhoon signal", "https://hk01/1", "HK01")]}, database_url=url)
        assert [a.title for a in api.feed(10, database_url=url)] == ["Typhoon signal"]


class TestFeed:
    def test_cluster_shown_once(self, store):
        _seed_cluster(store)
        assert [a.title for a in api.feed(10, store=store)] == ["C"]

    def test_pool_size_requested(self, store):
        config = ChronicleConfig(feed=FeedConfig(pool_factor=4))
        with patch.object(store, "latest_articles", return_value=[]) as latest:
            api.feed(5, store=store, config=config)
        latest.assert_called_once_with(20)


class TestFlagged:
    def test_page(self, store):
        _seed_cluster(store)
        items = api.flagged(10, store=store)
        by_title = {f.article.title: f for f in items}
        assert not by_title["A"].is_similar_duplicate
        assert by_title["B"].similar_to_id == by_title["A"].id
        assert by_title["C"].similar_to_id == by_title["A"].id

    def test_offset(self, store):
        _seed_cluster(store)
        assert [f.article.title for f in api.flagged(1, 1, store=store)] == ["B"]


class TestRelated:
    def test_other_members_newest_first(self, store):
        a, b, c = _seed_cluster(store)
        assert [x.title for x in api.related(a.id, store=store)] == ["C", "B"]
        assert [x.title for x in api.related(c.id, limit=1, store=store)] == ["B"]

    def test_unclustered_or_missing(self, store):
        lone = store.insert_article(Article(title="Lone", source_url="https://x/1", source_id="HK01",
                                            published_at=NOW))
        assert api.related(lone.id, store=store) == []
        assert api.related("999", store=store) == []


class TestReconcile:
    def test_fixes_counts(self, store):
        _seed_cluster(store)
        assert api.reconcile(store=store) == {"c1": (2, 3)}
        assert store.get_cluster("c1").article_count == 3
