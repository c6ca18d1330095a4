"""Love Blooms storefront database management CLI.

Provides commands to create and drop the storefront's database schema.
Reuses the setup_db/drop_db utilities in ``storefront.utils.db``; only SQL
providers are touched, in-memory providers need no schema.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys


def setup_database():
    """Create the storefront schema in every configured SQL provider."""
    from storefront.domain import storefront
    from storefront.utils.db import setup_db

    print("Initializing storefront domain...")
    storefront.init()
    print("Creating storefront database schema...")
    providers = setup_db(storefront)
    if providers:
        print(f"  Schema ready in: {', '.join(providers)}")
    else:
        print("  No SQL providers configured, nothing to create.")
    print("Done.")


def drop_database():
    """Drop the storefront schema from every configured SQL provider."""
    from storefront.domain import storefront
    from storefront.utils.db import drop_db

    print("Initializing storefront domain...")
    storefront.init()
    print("Dropping storefront database schema...")
    providers = drop_db(storefront)
    if providers:
        print(f"  Schema dropped from: {', '.join(providers)}")
    else:
        print("  No SQL providers configured, nothing to drop.")
    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="Love Blooms storefront database management")
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
