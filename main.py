#!/usr/bin/env python3
"""
vulnsrc — Fetch vulnerability advisories and store them in canonical form.

Usage:
  python main.py --list
  python main.py debian
  python main.py amzn1 amzn2
  python main.py --all
  python main.py debian --dry-run --json
  python main.py --all --db sqlite:///vulns.db

Environment variables (all optional):
  VULNSRC_AMZN1_MIRROR       Amazon Linux 2018.03 mirror list URI
  VULNSRC_AMZN2_MIRROR       Amazon Linux 2 mirror list URI
  VULNSRC_DEBIAN_JSON        Debian Security Tracker JSON URI
  VULNSRC_DEBIAN_CVEPREFIX   Prefix for Debian advisory links
  VULNSRC_DATABASE_URL       SQLAlchemy database URL
  VULNSRC_LOG_LEVEL          Logging level (default: INFO)
"""

import argparse
import json
import logging
import sys

from core.config import get_settings
from core.formatter import disable_color, print_summary, to_dict
from core.pipeline import run_updates
from vulndb.store import VulnStore
from vulnsrc import build_registry

logger = logging.getLogger("vulnsrc.cli")


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="vulnsrc",
        description="Ingest vulnerability advisories into a canonical vulnerability database.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --list
  python main.py debian
  python main.py --all --dry-run --json > batch.json
  VULNSRC_AMZN2_MIRROR=http://mirror.local/mirror.list python main.py amzn2
        """,
    )
    parser.add_argument(
        "updaters",
        nargs="*",
        metavar="UPDATER",
        help="Names of the updaters to run (see --list)",
    )
    parser.add_argument("--all", action="store_true", help="Run every registered updater")
    parser.add_argument("--list", action="store_true", help="List registered updaters and exit")
    parser.add_argument(
        "--db",
        metavar="URL",
        default=None,
        help="SQLAlchemy database URL (default: VULNSRC_DATABASE_URL or a local SQLite file)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Fetch and normalize but do not write vulnerabilities or watermarks",
    )
    parser.add_argument("--json", action="store_true", help="Print each produced batch as JSON")
    parser.add_argument("--no-color", action="store_true", help="Disable ANSI color codes in terminal output")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level.upper(),
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    if args.no_color:
        disable_color()

    registry = build_registry(settings)

    if args.list:
        for name in registry.names():
            print(name)
        return 0

    names = registry.names() if args.all else args.updaters
    if not names:
        parser.print_help()
        return 0

    store = VulnStore(args.db or settings.database_url)
    try:
        summary = run_updates(registry, store, names, commit=not args.dry_run)
    finally:
        store.close()

    if args.json:
        print(json.dumps({name: to_dict(resp) for name, resp in summary.responses.items()}, indent=2))
    else:
        for name, resp in summary.responses.items():
            print_summary(name, resp)

    for name, err in summary.errors.items():
        print(f"  [!] {name} failed: {err}", file=sys.stderr)

    return 1 if summary.errors else 0


if __name__ == "__main__":
    sys.exit(main())
