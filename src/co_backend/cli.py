from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

from .config import get_database_config
from .db import Base, get_engine, get_session, ping_database
from .errors import OntologyError
from .logging_config import configure_logging
from .seeds import seed_sites

# === Helpers ===


def _load_json(path: str) -> Any:
    file_path = Path(path)
    if not file_path.is_file():
        print(f"ERROR: File not found: {file_path}", file=sys.stderr)
        sys.exit(1)
    try:
        return json.loads(file_path.read_text(encoding="utf-8"))
    except ValueError as exc:
        print(f"ERROR: Invalid JSON in {file_path}: {exc}", file=sys.stderr)
        sys.exit(1)


def _as_records(data: Any, what: str) -> List[Dict[str, Any]]:
    if isinstance(data, dict):
        # {"<path>": {...}} mapping form.
        return [{"path": key, **value} for key, value in data.items() if isinstance(value, dict)]
    if isinstance(data, list):
        return [item for item in data if isinstance(item, dict)]
    print(f"ERROR: Expected a JSON list or object of {what}.", file=sys.stderr)
    sys.exit(1)


def _path_from_file(root: Path, file_path: Path) -> str:
    relative = file_path.relative_to(root).with_suffix("").as_posix()
    if relative == "index":
        return "/"
    if relative.endswith("/index"):
        relative = relative[: -len("/index")]
    return "/" + relative


# === Command implementations ===


def cmd_check_db(args: argparse.Namespace) -> None:
    """
    Simple connectivity check for the configured database.
    """
    db_cfg = get_database_config()
    print("Content Ontology Backend – Database Check")
    print("-----------------------------------------")
    print(f"Database URL: {db_cfg.database_url}")

    try:
        with get_session() as session:
            ping_database(session)
    except Exception as exc:  # broad by design for a health check
        print(f"ERROR: Failed to connect to database: {exc}")
        sys.exit(1)
    else:
        print("Database connection OK.")


def cmd_init_db(args: argparse.Namespace) -> None:
    """
    Create all tables directly from the ORM models.

    Intended for local development and tests; deployed databases should use
    'alembic upgrade head'.
    """
    # Register every model on Base.metadata before create_all.
    from . import models  # noqa: F401

    Base.metadata.create_all(get_engine())
    print("Database schema created.")


def cmd_seed_sites(args: argparse.Namespace) -> None:
    """
    Insert the initial Site rows (wknd) if they are missing.
    """
    with get_session() as session:
        created_count = seed_sites(session)

    print(f"Seeded {created_count} site(s).")


def cmd_add_site(args: argparse.Namespace) -> None:
    """
    Register an additional content source.
    """
    from .models import Site

    with get_session() as session:
        if session.get(Site, args.id) is not None:
            print(f"Site {args.id!r} already exists.")
            return
        session.add(
            Site(
                id=args.id,
                name=args.name or args.id,
                domain=args.domain,
                source_org=args.org,
                source_repo=args.repo,
            )
        )

    print(f"Created site {args.id!r}.")


def cmd_import_pages(args: argparse.Namespace) -> None:
    """
    Upsert crawled pages from a JSON file or a directory of .html files.

    JSON records look like {"path": "/adventures/x", "html": "...", "title": "..."}.
    """
    from .ingest import finish_crawl, refresh_site_page_count, start_crawl, upsert_page

    if bool(args.file) == bool(args.dir):
        print("ERROR: Pass exactly one of --file or --dir.", file=sys.stderr)
        sys.exit(1)

    records: List[Dict[str, Any]]
    if args.file:
        records = _as_records(_load_json(args.file), "pages")
    else:
        root = Path(args.dir)
        if not root.is_dir():
            print(f"ERROR: Directory not found: {root}", file=sys.stderr)
            sys.exit(1)
        records = [
            {"path": _path_from_file(root, f), "html": f.read_text(encoding="utf-8")}
            for f in sorted(root.rglob("*.html"))
        ]

    stored = 0
    errors = 0
    with get_session() as session:
        crawl = start_crawl(session, site_id=args.site)
        for record in records:
            path = record.get("path")
            if not path:
                errors += 1
                continue
            upsert_page(
                session,
                path,
                record.get("html") or record.get("content"),
                site_id=args.site,
                title=record.get("title"),
            )
            stored += 1
        finish_crawl(session, crawl, pages_crawled=stored, errors=errors)
        if args.site:
            refresh_site_page_count(session, args.site)

    print(f"Stored {stored} page(s) ({errors} skipped).")


def cmd_import_analysis(args: argparse.Namespace) -> None:
    """
    Apply classifier output (one record per page path) to stored pages.
    """
    from .ingest import apply_page_analysis

    records = _as_records(_load_json(args.file), "analysis records")

    applied = 0
    missing = 0
    with get_session() as session:
        for record in records:
            path = record.get("path")
            analysis = record.get("analysis", record)
            try:
                apply_page_analysis(session, path, analysis)
            except OntologyError as exc:
                if exc.status_code != 404:
                    raise
                missing += 1
                print(f"WARNING: {path}: {exc.message}", file=sys.stderr)
                continue
            applied += 1

    print(f"Applied analysis to {applied} page(s) ({missing} unknown path(s)).")


def cmd_import_performance(args: argparse.Namespace) -> None:
    """
    Upsert daily analytics samples, optionally rescoring afterwards.
    """
    from .ingest import upsert_performance_samples
    from .scoring import identify_patterns, recalculate_page_scores

    samples = _as_records(_load_json(args.file), "samples")

    with get_session() as session:
        written = upsert_performance_samples(session, samples)
        print(f"Stored {written} performance sample(s).")
        if args.recompute:
            scored = recalculate_page_scores(session)
            patterns = identify_patterns(session)
            print(f"Scored {scored} page(s); stored {patterns} pattern(s).")


def cmd_recompute_scores(args: argparse.Namespace) -> None:
    """
    Rebuild page_scores and performance_patterns from page_performance.
    """
    from .scoring import identify_patterns, recalculate_page_scores

    dry_run: bool = args.dry_run

    with get_session() as session:
        scored = recalculate_page_scores(session)
        patterns = identify_patterns(session)
        print(f"Scored {scored} page(s); stored {patterns} pattern(s).")

        if dry_run:
            session.rollback()
            print("Dry run complete (rolled back changes).")


def cmd_show_gaps(args: argparse.Namespace) -> None:
    """
    Print topics missing funnel-stage coverage.
    """
    from .gaps import find_content_gaps

    with get_session() as session:
        gaps = find_content_gaps(session, topic=args.topic, funnel_stage=args.funnel_stage)

    if not gaps:
        print("No content gaps found.")
        return

    print("Priority  Pages  Topic                 Missing")
    for gap in gaps:
        print(
            f"{gap.priority:<9} {gap.total_pages:<6} {gap.topic:<21} "
            f"{', '.join(gap.missing_stages)}"
        )


def cmd_list_pages(args: argparse.Namespace) -> None:
    """
    List inventory pages matching the given filters.
    """
    from .inventory import InventoryFilters, query_inventory

    filters = InventoryFilters(
        site_id=args.site,
        topic=args.topic,
        content_type=args.content_type,
        funnel_stage=args.funnel_stage,
        audience=args.audience,
        search=args.search,
        limit=args.limit,
    )
    with get_session() as session:
        result = query_inventory(session, filters)

    if not result.pages:
        print("No pages found.")
        return

    print("Type        Stage          Topic            Path")
    for page in result.pages:
        print(
            f"{page['content_type'] or '-':<11} {page['funnel_stage'] or '-':<14} "
            f"{page['primary_topic'] or '-':<16} {page['path']}"
        )
    print(f"{result.count} page(s).")


def cmd_stats(args: argparse.Namespace) -> None:
    """
    Print the inventory summary (optionally for one site).
    """
    from .context import get_inventory_summary

    with get_session() as session:
        summary = get_inventory_summary(session, site_id=args.site)

    print(summary["summary"])
    for key, value in summary["stats"].items():
        print(f"  {key}: {value}")
    if summary["top_topics"]:
        print("Top topics:")
        for row in summary["top_topics"]:
            print(f"  {row['primary_topic']}: {row['count']}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="co-backend",
        description="Content ontology backend CLI utilities.",
    )
    subparsers = parser.add_subparsers(
        dest="command",
        metavar="COMMAND",
        required=True,
    )

    # check-db
    p_db = subparsers.add_parser(
        "check-db",
        help="Check database connectivity using the configured CO_DATABASE_URL.",
    )
    p_db.set_defaults(func=cmd_check_db)

    # init-db
    p_init = subparsers.add_parser(
        "init-db",
        help="Create all tables from the ORM models (development only).",
    )
    p_init.set_defaults(func=cmd_init_db)

    # seed-sites
    p_seed = subparsers.add_parser(
        "seed-sites",
        help="Insert initial Site rows if missing.",
    )
    p_seed.set_defaults(func=cmd_seed_sites)

    # add-site
    p_add_site = subparsers.add_parser(
        "add-site",
        help="Register a new content source.",
    )
    p_add_site.add_argument("--id", required=True, help="Site identifier (e.g. 'wknd').")
    p_add_site.add_argument("--name", help="Display name (defaults to the id).")
    p_add_site.add_argument("--domain", help="Public domain of the site.")
    p_add_site.add_argument("--org", help="Document-authoring organisation.")
    p_add_site.add_argument("--repo", help="Document-authoring repository.")
    p_add_site.set_defaults(func=cmd_add_site)

    # import-pages
    p_pages = subparsers.add_parser(
        "import-pages",
        help="Upsert crawled pages from a JSON file or an HTML directory.",
    )
    p_pages.add_argument("--file", help="JSON list of {path, html, title} records.")
    p_pages.add_argument("--dir", help="Directory of .html files (path = relative name).")
    p_pages.add_argument("--site", help="Site id to attach the pages to.")
    p_pages.set_defaults(func=cmd_import_pages)

    # import-analysis
    p_analysis = subparsers.add_parser(
        "import-analysis",
        help="Apply page classification output from a JSON file.",
    )
    p_analysis.add_argument("--file", required=True, help="JSON analysis records.")
    p_analysis.set_defaults(func=cmd_import_analysis)

    # import-performance
    p_perf = subparsers.add_parser(
        "import-performance",
        help="Upsert daily analytics samples from a JSON file.",
    )
    p_perf.add_argument("--file", required=True, help="JSON list of samples.")
    p_perf.add_argument(
        "--recompute",
        action="store_true",
        default=False,
        help="Recompute scores and patterns after importing.",
    )
    p_perf.set_defaults(func=cmd_import_performance)

    # recompute-scores
    p_scores = subparsers.add_parser(
        "recompute-scores",
        help="Rebuild page scores and performance patterns.",
    )
    p_scores.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Compute without committing changes.",
    )
    p_scores.set_defaults(func=cmd_recompute_scores)

    # show-gaps
    p_gaps = subparsers.add_parser(
        "show-gaps",
        help="Show topics missing funnel-stage coverage.",
    )
    p_gaps.add_argument("--topic", help="Only analyse this primary topic.")
    p_gaps.add_argument(
        "--funnel-stage",
        choices=["awareness", "consideration", "decision"],
        help="Only report topics missing this stage.",
    )
    p_gaps.set_defaults(func=cmd_show_gaps)

    # list-pages
    p_list = subparsers.add_parser(
        "list-pages",
        help="List inventory pages matching filters.",
    )
    p_list.add_argument("--site", help="Filter by site id.")
    p_list.add_argument("--topic", help="Filter by primary topic.")
    p_list.add_argument("--content-type", help="Filter by content type.")
    p_list.add_argument("--funnel-stage", help="Filter by funnel stage.")
    p_list.add_argument("--audience", help="Substring match on audience labels.")
    p_list.add_argument("--search", help="Substring match on path or title.")
    p_list.add_argument("--limit", type=int, default=20, help="Maximum rows (default 20).")
    p_list.set_defaults(func=cmd_list_pages)

    # stats
    p_stats = subparsers.add_parser(
        "stats",
        help="Print inventory summary statistics.",
    )
    p_stats.add_argument("--site", help="Restrict to one site id.")
    p_stats.set_defaults(func=cmd_stats)

    return parser


def main(argv: list[str] | None = None) -> None:
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)
    try:
        args.func(args)
    except OntologyError as exc:
        print(f"ERROR: {exc.message}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
