#!/usr/bin/env python3
"""
Maintenance commands

    python -m school_cms.cli init-db
    python -m school_cms.cli check-db
    python -m school_cms.cli generate-secret
"""
import argparse
import asyncio
import secrets
import sys

from .core.config import get_settings
from .core.database import create_database
from .core.init_db import init_database

SECRET_BYTES = 64


async def run_init_db() -> bool:
    settings = get_settings()
    db = create_database(settings)

    print(f"🔄 Initializing {db.dialect_name} database")
    print("=" * 50)

    try:
        await db.connect()
        await init_database(db, settings)
        print("✅ Schema, migrations and bootstrap rows are in place")
        return True
    except Exception as e:
        print(f"❌ Initialization failed: {e}")
        return False
    finally:
        await db.close()


async def run_check_db(table: str) -> bool:
    db = create_database(get_settings())

    try:
        await db.connect()
        indexes = await db.indexes(table)
        print(f"📊 Found {len(indexes)} indexes on {table}:")
        for index in indexes:
            columns = ", ".join(name for name in index["column_names"] if name)
            print(f"   - Index {index['name']} (Unique: {bool(index['unique'])}): {columns}")
        return True
    except Exception as e:
        print(f"❌ Check failed: {e}")
        return False
    finally:
        await db.close()


def generate_secret() -> str:
    return secrets.token_hex(SECRET_BYTES)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="school_cms", description="School CMS maintenance commands")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="create tables, run migrations and bootstrap rows")
    check_parser = subparsers.add_parser("check-db", help="list the indexes of a table")
    check_parser.add_argument("--table", default="units")
    subparsers.add_parser("generate-secret", help="print a random JWT_SECRET")

    args = parser.parse_args(argv)

    if args.command == "generate-secret":
        print("🔐 JWT_SECRET (copy to your .env file, never commit it):")
        print(f"JWT_SECRET={generate_secret()}")
        return 0

    if args.command == "init-db":
        success = asyncio.run(run_init_db())
    else:
        success = asyncio.run(run_check_db(args.table))

    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
