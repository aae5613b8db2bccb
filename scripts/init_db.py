#!/usr/bin/env python
"""Create (or recreate) the engine's tables.

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --database-url sqlite+aiosqlite:///./hrpay.db
    python scripts/init_db.py --drop
"""

from __future__ import annotations

import argparse
import asyncio

from hrpay_engine.config import get_settings
from hrpay_engine.database import get_engine
from hrpay_engine.models import Base


async def init_schema(database_url: str, drop: bool) -> None:
    """Create all tables, optionally dropping them first."""
    engine = get_engine(database_url)
    try:
        async with engine.begin() as conn:
            if drop:
                print("Dropping existing tables")
                await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()

    print(f"Created {len(Base.metadata.tables)} tables:")
    for name in sorted(Base.metadata.tables):
        print(f"  {name}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Create HR payroll tables")
    parser.add_argument(
        "--database-url",
        default=None,
        help="Database URL (defaults to DATABASE_URL)",
    )
    parser.add_argument(
        "--drop",
        action="store_true",
        help="Drop existing tables first",
    )
    args = parser.parse_args()

    database_url = args.database_url or get_settings().database_url
    asyncio.run(init_schema(database_url, args.drop))


if __name__ == "__main__":
    main()
