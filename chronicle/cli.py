"""CLI entry point for Chronicle."""
import argparse
import logging
import sys

from chronicle import __version__
from chronicle.errors import ChronicleError
from chronicle.formatters import ConsoleFormatter, JSONFormatter

COMMANDS = ("ingest", "feed", "flag", "clusters", "related", "reconcile", "init-config")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chronicle",
        description="🗞️ Chronicle — cross-source news de-duplication",
    )
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("command", choices=COMMANDS,
                        help="ingest JSONL batches, show the feed, flag duplicates, list clusters, "
                             "show related coverage, repair cluster counts, or write a starter config")
    parser.add_argument("inputs", nargs="*",
                        help="ingest: JSONL files (one outlet per file); related: article id")
    parser.add_argument("--db", type=str, default=None,
                        help="Store URL (SQLAlchemy URL or memory://)")
    parser.add_argument("--source", type=str, default=None,
                        help="ingest: outlet id for all inputs (default: file name)")
    parser.add_argument("-n", "--limit", type=int, default=50,
                        help="Max items to show (default: 50)")
    parser.add_argument("--offset", type=int, default=0,
                        help="flag: page offset (default: 0)")
    parser.add_argument("-f", "--format", choices=["console", "json"], default="console",
                        help="Output format (default: console)")
    parser.add_argument("-o", "--output", type=str, default=None,
                        help="Write output to file instead of stdout")
    parser.add_argument("--title-similarity", type=float, default=None, dest="title_similarity",
                        help="Ingestion title similarity threshold (default: 0.6)")
    parser.add_argument("--content-similarity", type=float, default=None, dest="content_similarity",
                        help="Ingestion content similarity threshold (default: 0.5)")
    parser.add_argument("--feed-threshold", type=float, default=None, dest="feed_threshold",
                        help="Read-time feed similarity threshold (default: 0.4)")
    parser.add_argument("--flag-threshold", type=float, default=None, dest="flag_threshold",
                        help="Admin flagging similarity threshold (default: 0.4)")
    parser.add_argument("--history-window", type=str, default=None, dest="history_window",
                        help="Ingestion comparison window, e.g. 48h (default: 48h)")
    parser.add_argument("--flag-window", type=str, default=None, dest="flag_window",
                        help="Admin flagging pair window, e.g. 6h (default: 6h)")
    parser.add_argument("--priority-file", type=str, default=None, dest="priority_file",
                        help="YAML source-priority table (sources: {id: rank})")
    parser.add_argument("--workers", type=int, default=None,
                        help="Parallel outlet batches during ingest (default: 4)")
    parser.add_argument("--retries", type=int, default=1,
                        help="Retries for a batch whose history could not be read (default: 1)")
    parser.add_argument("--no-config", action="store_true",
                        help="Ignore config files (~/.chronicle.yaml, ./chronicle.yaml)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress status messages on stderr")
    return parser


def _emit(args, output: str, what: str) -> None:
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output)
        if not args.quiet:
            print(f"✅ Wrote {what} to {args.output}", file=sys.stderr)
    else:
        print(output)


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    # Apply config file defaults (CLI args always win)
    if not args.no_config:
        from chronicle.config import apply_config_defaults
        args = apply_config_defaults(parser, args)

    if args.command == "init-config":
        from chronicle.config import generate_starter_config
        path = generate_starter_config()
        print(f"📝 Wrote starter config to {path}")
        return

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    from chronicle.config import build_config
    from chronicle.store import open_store
    from chronicle import api

    formatter = JSONFormatter() if args.format == "json" else ConsoleFormatter()

    try:
        config = build_config(vars(args))
        store = open_store(config.database_url)

        if args.command == "ingest":
            from chronicle.utils import read_candidates
            if not args.inputs:
                parser.error("ingest needs at least one JSONL file")
            batches = {}
            for path in args.inputs:
                candidates = read_candidates(path, source_id=args.source)
                src = args.source or (candidates[0].source_id if candidates else path)
                batches.setdefault(src, []).extend(candidates)
            results = api.ingest(batches, store=store, config=config, retries=args.retries)
            _emit(args, formatter.format_ingest(results), "ingest summary")
            if not all(r.success for r in results.values()):
                sys.exit(1)

        elif args.command == "feed":
            articles = api.feed(args.limit, store=store, config=config)
            _emit(args, formatter.format(articles), f"{len(articles)} articles")

        elif args.command == "flag":
            items = api.flagged(args.limit, args.offset, store=store, config=config)
            _emit(args, formatter.format_flagged(items), f"{len(items)} articles")

        elif args.command == "clusters":
            clusters = [(c, store.cluster_members(c.id)) for c in store.list_clusters(args.limit)]
            _emit(args, formatter.format_clusters(clusters), f"{len(clusters)} clusters")

        elif args.command == "related":
            if len(args.inputs) != 1:
                parser.error("related needs exactly one article id")
            articles = api.related(args.inputs[0], args.limit, store=store, config=config)
            _emit(args, formatter.format(articles), f"{len(articles)} articles")

        elif args.command == "reconcile":
            changed = api.reconcile(store=store, config=config)
            if not args.quiet:
                print(f"🧮 Reconciled {len(changed)} cluster count(s)")
                for cid, (old, new) in sorted(changed.items()):
                    print(f"   {cid}: {old} → {new}")

    except (ChronicleError, OSError) as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
