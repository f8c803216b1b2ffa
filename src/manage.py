"""MedStock database management CLI.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys


def setup_database():
    from medstock.domain import medstock
    from medstock.utils.db import setup_db

    print("Initializing medstock domain...")
    medstock.init()
    print("Creating medstock database schema...")
    setup_db(medstock)
    print("Done.")


def drop_database():
    from medstock.domain import medstock
    from medstock.utils.db import drop_db

    print("Initializing medstock domain...")
    medstock.init()
    print("Dropping medstock database schema...")
    drop_db(medstock)
    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="MedStock database management")
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
