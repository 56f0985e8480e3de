"""Delivery database management CLI.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys

import structlog

logger = structlog.get_logger(__name__)


def setup_database():
    """Create the database schema for the delivery domain."""
    from delivery.domain import delivery
    from delivery.utils.db import setup_db

    delivery.init()
    logger.info("Creating database schema", domain=delivery.name)
    setup_db(delivery)
    logger.info("Database schema ready", domain=delivery.name)


def drop_database():
    """Drop the database schema for the delivery domain."""
    from delivery.domain import delivery
    from delivery.utils.db import drop_db

    delivery.init()
    logger.info("Dropping database schema", domain=delivery.name)
    drop_db(delivery)
    logger.info("Database schema dropped", domain=delivery.name)


def main():
    parser = argparse.ArgumentParser(description="Delivery database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
