import argparse
import logging
import sys
from pathlib import Path

from seo_redirects.adapters.clock import SystemClock
from seo_redirects.adapters.sqlite.migrator import SQLiteMigrator
from seo_redirects.adapters.sqlite.repos import SQLiteRedirectRepo
from seo_redirects.components.redirects import (
    HitTracker,
    RedirectConfig,
    RedirectResolver,
    RedirectService,
)
from seo_redirects.rules.loader import config_from_rules, load_rules

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cli")

DB_PATH = "data/redirects.db"
RULES_PATH = "rules.yaml"


def get_config(rules_path: str) -> RedirectConfig:
    path = Path(rules_path)
    if not path.exists():
        logger.warning("Rules file %s not found; using defaults.", path)
        return RedirectConfig()
    return config_from_rules(load_rules(path))


def get_store(db_path: str) -> SQLiteRedirectRepo:
    return SQLiteRedirectRepo(db_path, time_port=SystemClock())


def handle_migrate(args: argparse.Namespace) -> None:
    Path(args.db).parent.mkdir(parents=True, exist_ok=True)
    applied = SQLiteMigrator(args.db).run_migrations()
    print(f"Applied {len(applied)} migrations.")


def handle_import(service: RedirectService, args: argparse.Namespace) -> None:
    with open(args.file, encoding="utf-8-sig", newline="") as f:
        result = service.import_csv(f)
    print(f"Imported {result.imported} redirects ({result.skipped} rows skipped).")


def handle_export(service: RedirectService, args: argparse.Namespace) -> None:
    if args.file in (None, "-"):
        service.export_csv(sys.stdout)
        return
    with open(args.file, "w", encoding="utf-8", newline="") as f:
        count = service.export_csv(f)
    print(f"Exported {count} redirects to {args.file}.")


def handle_list(service: RedirectService, args: argparse.Namespace) -> None:
    page = service.list_page(args.page, args.per_page)
    for rule in page.rows:
        print(
            f"{rule.id}\t{rule.match_type}\t{rule.status}\t{rule.source} -> {rule.target}"
            f"\t(hits: {rule.hits})"
        )
    print(f"Page {max(1, args.page)}: {len(page.rows)} of {page.total} redirects.")


def handle_delete(service: RedirectService, args: argparse.Namespace) -> None:
    count = service.bulk_delete(args.ids)
    print(f"Deleted {count} redirects.")


def handle_resolve(
    store: SQLiteRedirectRepo,
    config: RedirectConfig,
    args: argparse.Namespace,
) -> None:
    tracker = HitTracker(store, SystemClock(), run_async=False) if args.track else None
    result = RedirectResolver(store, hit_recorder=tracker, config=config).resolve(
        args.uri, args.host
    )
    if not result.matched:
        print("No redirect.")
        return
    print(f"{result.status} -> {result.target} (rule {result.rule_id})")


def main() -> None:
    parser = argparse.ArgumentParser(description="SEO Redirects CLI")
    parser.add_argument("--db", default=DB_PATH, help="Path to the SQLite database")
    parser.add_argument("--rules", default=RULES_PATH, help="Path to rules.yaml")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    subparsers.add_parser("migrate", help="Apply pending database migrations")

    # import
    import_parser = subparsers.add_parser("import", help="Import redirects from CSV")
    import_parser.add_argument("file", help="CSV file (source,target,status,match_type)")

    # export
    export_parser = subparsers.add_parser("export", help="Export redirects to CSV")
    export_parser.add_argument("file", nargs="?", help="Output file (default: stdout)")

    # list
    list_parser = subparsers.add_parser("list", help="List redirects, newest first")
    list_parser.add_argument("--page", type=int, default=1)
    list_parser.add_argument("--per-page", type=int, default=20)

    # delete
    delete_parser = subparsers.add_parser("delete", help="Delete redirects by id")
    delete_parser.add_argument("ids", type=int, nargs="+")

    # resolve
    resolve_parser = subparsers.add_parser("resolve", help="Show which rule a URI hits")
    resolve_parser.add_argument("uri", help="Request path and query, e.g. /old?x=1")
    resolve_parser.add_argument("--host", default="")
    resolve_parser.add_argument("--track", action="store_true", help="Record the hit")

    args = parser.parse_args()

    if args.command == "migrate":
        handle_migrate(args)
        return

    config = get_config(args.rules)
    store = get_store(args.db)
    service = RedirectService(store, config)

    if args.command == "import":
        handle_import(service, args)
    elif args.command == "export":
        handle_export(service, args)
    elif args.command == "list":
        handle_list(service, args)
    elif args.command == "delete":
        handle_delete(service, args)
    elif args.command == "resolve":
        handle_resolve(store, config, args)


if __name__ == "__main__":
    main()
