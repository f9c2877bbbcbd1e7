#!/usr/bin/env python3
"""Create the sqlite schema without starting the API.

Usage:
    python scripts/init_db.py
"""

import asyncio
import logging

from src.core.db_client import close_connection, get_db_path, init_db


logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


async def main() -> None:
    await init_db()
    await close_connection()
    logger.info(f"Schema ready at {get_db_path()}")


if __name__ == "__main__":
    asyncio.run(main())
