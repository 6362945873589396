#!/usr/bin/env python
"""
Create the article tables in the configured database.

Usage:
    python scripts/init_db.py [config.yaml]
"""
import asyncio
import sys

from newscrawler.core.config import ConfigError, get_settings, load_config
from newscrawler.core.database import Database


async def main(path: str) -> int:
    """Create the tables of every model."""
    try:
        config = load_config(path)
    except ConfigError as e:
        print(f"Error: {e}")
        return 1

    db = Database(config.database)
    await db.connect(use_pool=False)
    try:
        await db.create_tables()
        print(f"Created tables in {config.database.driver} database")
    finally:
        await db.disconnect()
    return 0


if __name__ == "__main__":
    path = sys.argv[1] if len(sys.argv) > 1 else get_settings().CONFIG_PATH
    sys.exit(asyncio.run(main(path)))
