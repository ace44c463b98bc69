"""Checkout operations CLI.

Usage:
    python src/manage.py setup-db             # Create all tables
    python src/manage.py drop-db              # Drop all tables
    python src/manage.py sweep-stale-orders   # Cancel abandoned pending orders
    python src/manage.py sweep-stale-orders --older-than-hours 6
"""

import argparse
import sys


def setup_database():
    from checkout.domain import checkout
    from checkout.utils.db import setup_db

    print("Initializing checkout domain...")
    checkout.init()
    print("Creating checkout database schema...")
    setup_db(checkout)
    print("Done.")


def drop_database():
    from checkout.domain import checkout
    from checkout.utils.db import drop_db

    print("Initializing checkout domain...")
    checkout.init()
    print("Dropping checkout database schema...")
    drop_db(checkout)
    print("Done.")


def sweep_stale_orders(older_than_hours=None):
    from checkout.domain import checkout
    from checkout.orchestration.cancellation import sweep_stale_orders as sweep
    from checkout.utils.logging import configure_logging

    configure_logging()
    checkout.init()
    with checkout.domain_context():
        report = sweep(older_than_hours=older_than_hours)

    print(f"Cutoff: {report.cutoff.isoformat()}")
    print(f"  cancelled: {len(report.cancelled)}")
    print(f"  skipped:   {len(report.skipped)}")
    print(f"  failed:    {len(report.failed)}")
    return 1 if report.failed else 0


def main():
    parser = argparse.ArgumentParser(description="Checkout operations")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    sweep_parser = subparsers.add_parser("sweep-stale-orders", help="Cancel stale pending orders and release stock")
    sweep_parser.add_argument(
        "--older-than-hours",
        type=int,
        default=None,
        help="Age threshold in hours (default: CHECKOUT_STALE_ORDER_HOURS or 4)",
    )

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "sweep-stale-orders":
        sys.exit(sweep_stale_orders(args.older_than_hours))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
