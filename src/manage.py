"""Marketplace management CLI.

Usage:
    python src/manage.py setup-db                     # Create all tables
    python src/manage.py drop-db                      # Drop all tables
    python src/manage.py settle                       # Run a settlement pass now
    python src/manage.py settle --as-of 2026-01-31    # Settle as if it were that day
"""

import argparse
import sys
from datetime import datetime


def setup_database():
    from marketplace.domain import marketplace
    from marketplace.utils.db import setup_db

    print("Initializing marketplace domain...")
    marketplace.init()
    print("Creating marketplace database schema...")
    touched = setup_db(marketplace)
    if touched:
        print(f"  schema ready for: {', '.join(touched)}")
    else:
        print("  no SQL providers configured, nothing to create.")
    print("Done.")


def drop_database():
    from marketplace.domain import marketplace
    from marketplace.utils.db import drop_db

    print("Initializing marketplace domain...")
    marketplace.init()
    print("Dropping marketplace database schema...")
    touched = drop_db(marketplace)
    if touched:
        print(f"  schema dropped for: {', '.join(touched)}")
    else:
        print("  no SQL providers configured, nothing to drop.")
    print("Done.")


def settle(as_of: datetime | None = None) -> int:
    from marketplace.domain import marketplace
    from server import run_pass

    marketplace.init()
    result = run_pass(marketplace, as_of=as_of)
    print(f"Promoted {result.promoted_count} earning(s), total {result.total_amount_promoted}")
    if not result.succeeded:
        print(f"Settlement pass reported failures: {result.error}", file=sys.stderr)
        return 1
    return 0


def _parse_as_of(value: str) -> datetime:
    from marketplace import settings

    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        # Naive input is local to the settlement timezone
        parsed = parsed.replace(tzinfo=settings.settlement_timezone())
    return parsed


def main():
    parser = argparse.ArgumentParser(description="Marketplace management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    settle_parser = subparsers.add_parser("settle", help="Promote earnings whose holding period has elapsed")
    settle_parser.add_argument(
        "--as-of",
        type=_parse_as_of,
        help="ISO date or datetime to settle as of (default: now)",
    )

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "settle":
        sys.exit(settle(args.as_of))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
