"""
Create the catalog tables in the database named by DATABASE_SYNC_URL.

Usage:
    python scripts/init_db.py [--drop]
"""

import argparse

import models  # noqa: F401  registers the tables on Base.metadata
from database import Base, sync_engine


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create the Local Library tables")
    parser.add_argument(
        "--drop", action="store_true", help="Drop existing tables first"
    )
    return parser.parse_args()


def main():
    args = parse_args()
    if args.drop:
        Base.metadata.drop_all(bind=sync_engine)
    Base.metadata.create_all(bind=sync_engine)
    print(f"Created tables: {', '.join(sorted(Base.metadata.tables))}")


if __name__ == "__main__":
    main()
