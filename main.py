"""
Social graph schema tool.

Usage:
  python main.py init             create collections, indexes and placeholders
  python main.py init --no-seed   same, without placeholders
  python main.py check            report drift from the declared schema
  python main.py unseed           remove the placeholder documents
  python main.py purge --days 30  delete documents not used for N days

Connection details come from DATABASE_URL / DATABASE_NAME unless --uri / --db
are given.
"""
import argparse
import logging
import sys
from typing import List, Optional

import database
from errors import SchemaError
from initializer import (
    DEFAULT_MAX_AGE_DAYS,
    check_schema,
    init_schema,
    purge_stale,
    remove_placeholders,
)

logger = logging.getLogger("schema")


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Initialize the social graph MongoDB schema")
    parser.add_argument("--uri", default=None, help="MongoDB connection string (default: $DATABASE_URL)")
    parser.add_argument("--db", default=None, help="Database name (default: $DATABASE_NAME)")
    parser.add_argument("-v", "--verbose", action="store_true")

    sub = parser.add_subparsers(dest="command", required=True)
    init = sub.add_parser("init", help="Create collections, indexes and placeholders")
    init.add_argument("--no-seed", action="store_true", help="Skip placeholder documents")
    sub.add_parser("check", help="Report drift from the declared schema")
    sub.add_parser("unseed", help="Remove placeholder documents")
    purge = sub.add_parser("purge", help="Delete documents not used recently")
    purge.add_argument("--days", type=int, default=DEFAULT_MAX_AGE_DAYS)
    return parser


def run(args: argparse.Namespace) -> int:
    client = database.get_client(args.uri)
    try:
        db = database.get_database(client, args.db)

        if args.command == "init":
            report = init_schema(db, seed=not args.no_seed)
            if not report.changed:
                logger.info("Nothing to do, schema already in place")
            return 0

        if args.command == "check":
            problems = check_schema(db)
            for problem in problems:
                logger.error("Drift: %s", problem)
            if problems:
                return 1
            logger.info("Schema matches (%s)", db.name)
            return 0

        if args.command == "unseed":
            removed = remove_placeholders(db)
            logger.info("Removed %d placeholder documents", removed)
            return 0

        if args.command == "purge":
            deleted = purge_stale(db, max_age_days=args.days)
            logger.info("Purged %d documents older than %d days", sum(deleted.values()), args.days)
            return 0

        raise ValueError(f"unknown command {args.command}")
    finally:
        client.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "purge" and args.days < 1:
        parser.error(f"--days must be at least 1, got {args.days}")
    configure_logging(args.verbose)
    try:
        return run(args)
    except SchemaError as e:
        logger.error("%s", e)
        return e.exit_code


if __name__ == "__main__":
    sys.exit(main())
