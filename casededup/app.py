import argparse
import json
from pathlib import Path

from . import __version__
from .database import init_database
from .env import load_settings
from .errors import CaseDedupError, ValidationError
from .logger import get_logger
from .schema import (
    ALL_STATUSES,
    RESOLVE_STATUSES,
    require_valid,
    validate_threshold,
)
from .services import open_services


def _settings(args: argparse.Namespace):
    settings = load_settings()
    if args.db:
        settings.db_path = Path(args.db)
    return settings


def _print_pair(pair: dict) -> None:
    first = pair.get("firstCase") or {}
    second = pair.get("secondCase") or {}
    print(f"ID: {pair['id']}  [{pair['status']}]  score={pair['similarityScore']:.3f}")
    print(f"  First:  {pair['firstCaseId']} {first.get('fullName', '(deleted)')}")
    print(f"  Second: {pair['secondCaseId']} {second.get('fullName', '(deleted)')}")
    if pair.get("resolvedBy"):
        print(f"  Resolved by {pair['resolvedBy']} at {pair['resolvedAt']}")
    if pair.get("resolutionNotes"):
        print(f"  Notes: {pair['resolutionNotes']}")


def cmd_init_db(args: argparse.Namespace) -> None:
    settings = _settings(args)
    init_database(settings.db_path)
    print(f"Database ready at {settings.db_path}")


def cmd_import_cases(args: argparse.Namespace) -> None:
    input_path = Path(args.input)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")
    with input_path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    rows = data.get("cases", []) if isinstance(data, dict) else data

    settings = _settings(args)
    init_database(settings.db_path)
    with open_services(settings) as services:
        count = services.case_store.import_cases(rows)
    print(f"Imported {count} cases")


def cmd_detect(args: argparse.Namespace) -> None:
    settings = _settings(args)
    threshold = settings.threshold if args.threshold is None else args.threshold
    require_valid(validate_threshold(threshold))
    timeout = args.timeout if args.timeout is not None else settings.detect_timeout

    init_database(settings.db_path)
    with open_services(settings) as services:
        result = services.detection.run(actor_id=args.actor, threshold=threshold, timeout=timeout)
        described = services.registry.describe(result.created)
    for pair in described:
        _print_pair(pair)
    print(
        f"Done. compared={result.compared} candidates={result.candidates} "
        f"created={result.count} existing={result.skipped_existing} failed={result.failed}"
    )


def cmd_list(args: argparse.Namespace) -> None:
    settings = _settings(args)
    init_database(settings.db_path)
    with open_services(settings) as services:
        pairs = services.registry.describe(services.registry.list_pairs(args.status))
    if not pairs:
        print("No duplicate pairs.")
        return
    print(f"Found {len(pairs)} duplicate pairs:\n")
    for pair in pairs:
        _print_pair(pair)
        print()


def cmd_resolve(args: argparse.Namespace) -> None:
    settings = _settings(args)
    init_database(settings.db_path)
    with open_services(settings) as services:
        result = services.workflow.resolve(
            args.id,
            args.status,
            resolver_id=args.actor,
            notes=args.notes,
            delete_second_record=args.delete_second,
        )
        pair = services.registry.describe([result.pair])[0]
    _print_pair(pair)
    print(result.message)


def cmd_stats(args: argparse.Namespace) -> None:
    settings = _settings(args)
    init_database(settings.db_path)
    with open_services(settings) as services:
        counts = services.registry.count_by_status()
    for status, count in counts.items():
        print(f"{status}: {count}")
    print(f"TOTAL: {sum(counts.values())}")


def cmd_serve(args: argparse.Namespace) -> None:
    import uvicorn
    from .api import create_app

    uvicorn.run(create_app(_settings(args)), host=args.host, port=args.port)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="casededup", description="Duplicate-case detection and resolution")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--db", help="Path to SQLite database (default: CASEDEDUP_DB_PATH or data/cases.db)")

    subparsers = parser.add_subparsers(dest="command")
    ini = subparsers.add_parser("init-db", help="Create the database tables")
    ini.set_defaults(func=cmd_init_db)

    imp = subparsers.add_parser("import-cases", help="Load case records from a JSON file")
    imp.add_argument("--input", required=True, help="JSON list of cases, or {\"cases\": [...]}")
    imp.set_defaults(func=cmd_import_cases)

    det = subparsers.add_parser("detect", help="Run a duplicate detection pass over approved cases")
    det.add_argument("--threshold", type=float, help="Minimum similarity in [0, 1] (default: CASEDEDUP_THRESHOLD or 0.7)")
    det.add_argument("--actor", help="Id of the moderator running the pass")
    det.add_argument("--timeout", type=float, help="Abort scoring after this many seconds")
    det.set_defaults(func=cmd_detect)

    lst = subparsers.add_parser("list", help="List duplicate pairs, highest score first")
    lst.add_argument("--status", choices=ALL_STATUSES, help="Only pairs with this status")
    lst.set_defaults(func=cmd_list)

    res = subparsers.add_parser("resolve", help="Confirm, reject or resolve a pending pair")
    res.add_argument("--id", required=True, help="Duplicate pair id")
    res.add_argument("--status", required=True, choices=RESOLVE_STATUSES, help="New status")
    res.add_argument("--notes", help="Resolution notes")
    res.add_argument("--delete-second", action="store_true", help="With CONFIRMED: delete the second case")
    res.add_argument("--actor", help="Id of the resolving moderator")
    res.set_defaults(func=cmd_resolve)

    sts = subparsers.add_parser("stats", help="Count pairs by status")
    sts.set_defaults(func=cmd_stats)

    srv = subparsers.add_parser("serve", help="Serve the duplicates HTTP API")
    srv.add_argument("--host", default="127.0.0.1")
    srv.add_argument("--port", type=int, default=8000)
    srv.set_defaults(func=cmd_serve)
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if not hasattr(args, "func"):
        parser.print_help()
        return

    settings = load_settings()
    get_logger(level=settings.log_level, log_dir=settings.log_dir)
    try:
        args.func(args)
    except ValidationError as e:
        print(f"Invalid: {e.message}")
        raise SystemExit(2)
    except CaseDedupError as e:
        print(f"[{type(e).__name__}] {e.message}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
