"""Storefront database management CLI.

Creates and drops the ordering and product catalogue schemas, and seeds the
tax rate table with the default US state rates.

Usage:
    python src/manage.py setup-db          # Create all tables
    python src/manage.py drop-db           # Drop all tables
    python src/manage.py seed-tax-rates    # Load default state tax rates
"""

import argparse
import sys


def setup_databases():
    """Create the ordering domain schema and the SQL product catalogue schema."""
    from ordering.catalogue import get_catalogue
    from ordering.domain import ordering
    from ordering.utils.db import setup_db

    print("Initializing ordering domain...")
    ordering.init()
    print("Creating database schema...")
    setup_db(ordering, get_catalogue())
    print("Done.")


def drop_databases():
    from ordering.catalogue import get_catalogue
    from ordering.domain import ordering
    from ordering.utils.db import drop_db

    print("Initializing ordering domain...")
    ordering.init()
    print("Dropping database schema...")
    drop_db(ordering, get_catalogue())
    print("Done.")


def seed_tax_rates(overwrite=False):
    """Load the default state rate table. Existing regions are kept unless ``overwrite``."""
    from ordering.domain import ordering
    from ordering.tax.defaults import seed_default_rates

    ordering.init()
    with ordering.domain_context():
        created, updated, skipped = seed_default_rates(overwrite=overwrite)

    print(f"Tax rates: {created} created, {updated} updated, {skipped} skipped.")
    return created, updated, skipped


def main(argv=None):
    parser = argparse.ArgumentParser(description="Storefront database management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    seed_parser = subparsers.add_parser("seed-tax-rates", help="Load default US state tax rates")
    seed_parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace rates for regions that are already configured",
    )

    args = parser.parse_args(argv)

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    elif args.command == "seed-tax-rates":
        seed_tax_rates(overwrite=args.overwrite)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
