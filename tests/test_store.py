"""Tests for chronicle.store — MemoryStore and SQLStore share one contract."""
from datetime import datetime, timedelta, timezone

import pytest

from chronicle.errors import StoreError
from chronicle.models import Article, Cluster
from chronicle.store import MemoryStore, SQLStore, open_store

T0 = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return MemoryStore()
    return SQLStore(f"sqlite:///{tmp_path / 'sub' / 'chronicle.db'}")


def _article(title, url, source="HK01", minutes=0, **kw):
    return Article(title=title, source_url=url, source_id=source,
                   published_at=T0 + timedelta(minutes=minutes), **kw)


def _cluster(id="c1", main="1", count=2):
    return Cluster(id=id, main_article_id=main, title="Story", article_count=count,
                   first_seen_at=T0, last_updated_at=T0)


class TestArticles:
    def test_insert_assigns_id_and_derived_fields(self, any_store):
        stored = any_store.insert_article(_article("Typhoon Signal No. 8", "https://a/1", content="Body"))
        assert stored.id
        assert stored.title_normalized == "typhoonsignalno8"
        assert len(stored.content_fingerprint) == 32
        fetched = any_store.get_article(stored.id)
        assert fetched.title == "Typhoon Signal No. 8"
        assert fetched.content == "Body"
        assert fetched.published_at == T0

    def test_duplicate_record_returns_none(self, any_store):
        assert any_store.insert_article(_article("A", "https://a/1", original_id="7"))
        assert any_store.insert_article(_article("B", "https://a/2", original_id="7")) is None
        assert len(any_store.latest_articles(10)) == 1

    def test_same_original_id_other_source_allowed(self, any_store):
        assert any_store.insert_article(_article("A", "https://a/1", original_id="7"))
        assert any_store.insert_article(_article("A", "https://b/1", source="RTHK", original_id="7"))

    def test_url_used_when_no_original_id(self, any_store):
        assert any_store.insert_article(_article("A", "https://a/1"))
        assert any_store.insert_article(_article("B", "https://a/1")) is None

    def test_recent_articles_window_and_order(self, any_store):
        any_store.insert_article(_article("old", "https://a/0", minutes=-60 * 50))
        any_store.insert_article(_article("first", "https://a/1", minutes=0))
        any_store.insert_article(_article("second", "https://a/2", minutes=10))
        recent = any_store.recent_articles(T0 - timedelta(hours=48))
        assert [a.title for a in recent] == ["second", "first"]

    def test_latest_articles_paging(self, any_store):
        for i in range(5):
            any_store.insert_article(_article(f"t{i}", f"https://a/{i}", minutes=i))
        assert [a.title for a in any_store.latest_articles(2)] == ["t4", "t3"]
        assert [a.title for a in any_store.latest_articles(2, offset=2)] == ["t2", "t1"]

    def test_get_missing_article(self, any_store):
        assert any_store.get_article("999") is None
        assert any_store.get_article("not-an-id") is None

    def test_returned_copies_are_detached(self, any_store):
        stored = any_store.insert_article(_article("A", "https://a/1"))
        stored.title = "mutated"
        assert any_store.get_article(stored.id).title == "A"


class TestClusters:
    def test_create_and_link(self, any_store):
        a = any_store.insert_article(_article("A", "https://a/1"))
        any_store.create_cluster(_cluster(main=a.id))
        any_store.set_article_cluster(a.id, "c1")
        b = any_store.insert_article(_article("B", "https://b/1", source="RTHK", minutes=5, cluster_id="c1"))

        assert any_store.get_article(a.id).cluster_id == "c1"
        assert [m.id for m in any_store.cluster_members("c1")] == [a.id, b.id]
        assert any_store.count_members() == {"c1": 2}

    def test_increment(self, any_store):
        any_store.create_cluster(_cluster())
        later = T0 + timedelta(hours=2)
        any_store.increment_cluster("c1", later)
        cluster = any_store.get_cluster("c1")
        assert cluster.article_count == 3
        assert cluster.last_updated_at == later
        assert cluster.first_seen_at == T0

    def test_set_count(self, any_store):
        any_store.create_cluster(_cluster())
        any_store.set_cluster_count("c1", 5)
        assert any_store.get_cluster("c1").article_count == 5

    def test_missing_cluster_writes_raise(self, any_store):
        with pytest.raises(StoreError):
            any_store.increment_cluster("nope", T0)
        with pytest.raises(StoreError):
            any_store.set_cluster_count("nope", 1)

    def test_missing_article_link_raises(self, any_store):
        any_store.create_cluster(_cluster())
        with pytest.raises(StoreError):
            any_store.set_article_cluster("999", "c1")

    def test_duplicate_cluster_id_raises(self, any_store):
        any_store.create_cluster(_cluster())
        with pytest.raises(StoreError):
            any_store.create_cluster(_cluster())

    def test_list_clusters_newest_first(self, any_store):
        any_store.create_cluster(_cluster("old"))
        newer = _cluster("new")
        newer.first_seen_at = T0 + timedelta(hours=1)
        any_store.create_cluster(newer)
        assert [c.id for c in any_store.list_clusters()] == ["new", "old"]
        assert [c.id for c in any_store.list_clusters(limit=1)] == ["new"]

    def test_get_missing_cluster(self, any_store):
        assert any_store.get_cluster("nope") is None


class TestSQLStore:
    def test_persists_across_instances(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'chronicle.db'}"
        SQLStore(url).insert_article(_article("A", "https://a/1"))
        assert [a.title for a in SQLStore(url).latest_articles(10)] == ["A"]

    def test_home_directory_expanded(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        store = SQLStore("sqlite:///~/.cache/chronicle/chronicle.db")
        store.insert_article(_article("A", "https://a/1"))
        assert (tmp_path / ".cache" / "chronicle" / "chronicle.db").exists()
        assert store.database_url == f"sqlite:///{tmp_path / '.cache' / 'chronicle' / 'chronicle.db'}"

    def test_creates_parent_directory(self, tmp_path):
        SQLStore(f"sqlite:///{tmp_path / 'deep' / 'er' / 'x.db'}")
        assert (tmp_path / "deep" / "er" / "x.db").exists()


class TestOpenStore:
    def test_memory(self):
        assert isinstance(open_store("memory://"), MemoryStore)
        assert isinstance(open_store(None), MemoryStore)

    def test_sqlite(self, tmp_path):
        assert isinstance(open_store(f"sqlite:///{tmp_path / 'x.db'}"), SQLStore)
