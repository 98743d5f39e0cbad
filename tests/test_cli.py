"""Tests for the command-line interface."""
import json

import pytest

from chronicle.cli import build_parser, main


def _jsonl(path, records):
    path.write_text("\n".join(json.dumps(r, ensure_ascii=False) for r in records), encoding="utf-8")
    return str(path)


@pytest.fixture
def db(tmp_path):
    return f"sqlite:///{tmp_path / 'cli.db'}"


@pytest.fixture
def batches(tmp_path):
    hk01 = _jsonl(tmp_path / "HK01.jsonl", [
        {"title": "Typhoon signal No 8 issued", "source_url": "https://hk01.example/1",
         "published_at": "2026-10-19T01:00:00Z"},
    ])
    rthk = _jsonl(tmp_path / "RTHK.jsonl", [
        {"title": "Typhoon signal No. 8 issued today", "source_url": "https://rthk.example/1",
         "published_at": "2026-10-19T01:05:00Z"},
        {"title": "Stock market closes higher", "source_url": "https://rthk.example/2",
         "published_at": "2026-10-19T01:10:00Z"},
    ])
    return hk01, rthk


def _run(capsys, *argv):
    main(["--no-config", "-q", *argv])
    return capsys.readouterr().out


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args(["feed"])
        assert args.limit == 50
        assert args.format == "console"
        assert args.title_similarity is None

    def test_unknown_command(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["bogus"])


class TestMain:
    def test_ingest_then_feed(self, capsys, db, batches):
        out = _run(capsys, "ingest", *batches, "--db", db, "-f", "json", "--workers", "1",
                   "--history-window", "100000h")
        summary = json.loads(out)
        assert summary["HK01"]["inserted"] == 1
        assert summary["RTHK"]["inserted"] == 2

        feed = json.loads(_run(capsys, "feed", "--db", db, "-f", "json"))
        assert [a["title"] for a in feed] == ["Stock market closes higher", "Typhoon signal No. 8 issued today"]

    def test_clusters_and_related(self, capsys, db, batches):
        _run(capsys, "ingest", *batches, "--db", db, "--workers", "1", "--history-window", "100000h")
        clusters = json.loads(_run(capsys, "clusters", "--db", db, "-f", "json"))
        assert len(clusters) == 1
        assert clusters[0]["article_count"] == 2
        main_id = clusters[0]["main_article_id"]

        related = json.loads(_run(capsys, "related", main_id, "--db", db, "-f", "json"))
        assert [a["source_id"] for a in related] == ["RTHK"]

    def test_flag(self, capsys, db, batches):
        _run(capsys, "ingest", *batches, "--db", db, "--workers", "1", "--history-window", "100000h")
        items = json.loads(_run(capsys, "flag", "--db", db, "-f", "json"))
        flagged = [i for i in items if i["is_similar_duplicate"]]
        assert [i["source_id"] for i in flagged] == ["RTHK"]

    def test_output_file(self, capsys, db, batches, tmp_path):
        _run(capsys, "ingest", *batches, "--db", db, "--workers", "1", "--history-window", "100000h")
        target = tmp_path / "feed.json"
        _run(capsys, "feed", "--db", db, "-f", "json", "-o", str(target))
        assert len(json.loads(target.read_text(encoding="utf-8"))) == 2

    def test_reconcile(self, capsys, db):
        main(["--no-config", "reconcile", "--db", db])
        assert "Reconciled 0" in capsys.readouterr().out

    def test_ingest_requires_inputs(self, db):
        with pytest.raises(SystemExit):
            main(["--no-config", "ingest", "--db", db])

    def test_bad_threshold_exits(self, capsys, db):
        with pytest.raises(SystemExit) as exc:
            main(["--no-config", "feed", "--db", db, "--feed-threshold", "1.5"])
        assert exc.value.code == 1
        assert "feed similarity_threshold" in capsys.readouterr().err

    def test_init_config(self, capsys, tmp_path, monkeypatch):
        monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path)
        main(["--no-config", "init-config"])
        assert (tmp_path / ".chronicle.yaml").exists()
