#!/usr/bin/env python
"""Create the attendance payroll tables in the database.

Usage:
    python scripts/create_schema.py
    python scripts/create_schema.py --database-url postgresql+asyncpg://...
    python scripts/create_schema.py --dry-run
"""

import argparse
import asyncio
import sys

from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateIndex, CreateTable

from attendance_payroll.config import get_settings
from attendance_payroll.database import create_schema, get_engine
from attendance_payroll.models import Base


def print_ddl() -> None:
    """Print PostgreSQL DDL for every table and index."""
    dialect = postgresql.dialect()
    for table in Base.metadata.sorted_tables:
        print(f"{CreateTable(table).compile(dialect=dialect)};".strip())
        for index in sorted(table.indexes, key=lambda i: i.name or ""):
            print(f"{CreateIndex(index).compile(dialect=dialect)};")
        print()


async def run(database_url: str, drop_first: bool) -> list[str]:
    engine = get_engine(database_url)
    try:
        return await create_schema(engine, drop_first=drop_first)
    finally:
        await engine.dispose()


def main() -> int:
    parser = argparse.ArgumentParser(description="Create attendance payroll tables")
    parser.add_argument(
        "--database-url",
        default=get_settings().database_url,
        help="Database URL (defaults to DATABASE_URL)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the DDL without connecting",
    )
    parser.add_argument(
        "--drop",
        action="store_true",
        help="Drop existing payroll tables first (destroys data)",
    )

    args = parser.parse_args()

    if args.dry_run:
        print_ddl()
        return 0

    print("Attendance Payroll Schema")
    print("=" * 50)
    print(f"Database: {args.database_url.split('@')[-1] if '@' in args.database_url else args.database_url}")
    print()

    tables = asyncio.run(run(args.database_url, args.drop))
    for name in tables:
        print(f"  OK  {name}")
    print()
    print(f"{len(tables)} tables ready.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
