"""Rich console output with relative timestamps."""
from typing import Dict, List, Sequence, Tuple

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from chronicle.engine import BatchResult
from chronicle.models import Article, Cluster, FlaggedArticle
from chronicle.utils import relative_time


def _ts(a: Article) -> str:
    if not a.published_at:
        return "—"
    return f"{a.published_at.strftime('%Y-%m-%d %H:%M')} ({relative_time(a.published_at)})"


class ConsoleFormatter:
    def _console(self) -> Console:
        return Console(record=True, width=120)

    def format(self, articles: Sequence[Article]) -> str:
        console = self._console()
        console.print(Panel(f"[bold cyan]🗞️  Chronicle Feed[/] — {len(articles)} stories", expand=False))
        for i, a in enumerate(articles, 1):
            console.print(f"\n[bold white]{i}. {escape(a.title)}[/]")
            cluster = f" | 🔗 {a.cluster_id}" if a.cluster_id else ""
            console.print(f"   [dim]📰 {escape(a.source_id)} | 🕐 {_ts(a)}{cluster}[/]")
            console.print(f"   [blue underline]{escape(a.source_url)}[/]")
        return console.export_text()

    def format_flagged(self, items: Sequence[FlaggedArticle]) -> str:
        console = self._console()
        table = Table(title="Admin listing — similar duplicates", show_lines=False)
        table.add_column("ID", justify="right")
        table.add_column("Source")
        table.add_column("Published")
        table.add_column("Title", overflow="fold")
        table.add_column("Duplicate of", justify="right")
        for f in items:
            a = f.article
            dup = f"[yellow]{f.similar_to_id}[/]" if f.is_similar_duplicate else ""
            published = a.published_at.strftime("%m-%d %H:%M") if a.published_at else "—"
            table.add_row(str(a.id or ""), escape(a.source_id), published, escape(a.title), dup)
        console.print(table)
        flagged = sum(1 for f in items if f.is_similar_duplicate)
        console.print(f"[dim]{flagged} of {len(items)} flagged[/]")
        return console.export_text()

    def format_clusters(self, clusters: Sequence[Tuple[Cluster, List[Article]]]) -> str:
        console = self._console()
        console.print(Panel(f"[bold cyan]📊 Recent clusters[/] — {len(clusters)}", expand=False))
        for cluster, members in clusters:
            console.print(f"\n[bold white]{escape(cluster.title)}[/]")
            console.print(
                f"   [dim]{cluster.id} | count={cluster.article_count} | members={len(members)} "
                f"| first seen {relative_time(cluster.first_seen_at)}[/]"
            )
            for a in members:
                main = " ★" if a.id == cluster.main_article_id else ""
                label = escape(f"[{a.source_id}] {a.title[:60]}")
                console.print(f"   └─ {label}{main}")
        return console.export_text()

    def format_ingest(self, results: Dict[str, BatchResult]) -> str:
        console = self._console()
        console.print("📊 INGEST SUMMARY")
        total_found = total_inserted = 0
        for src in sorted(results):
            r = results[src]
            status = "✅" if r.success else "❌"
            console.print(
                f"{status} {escape(src)}: {r.inserted} inserted, {r.clustered} clustered, "
                f"{r.skipped} skipped ({r.duration_ms:.0f}ms)"
            )
            if r.error:
                console.print(f"   Error: {escape(r.error)}")
            total_found += r.found
            total_inserted += r.inserted
        console.print(f"\n📰 Total candidates: {total_found}")
        console.print(f"💾 Total inserted: {total_inserted}")
        return console.export_text()
