#!/usr/bin/env python3
"""
Database initialization script for the meeting engine.
Run this to create the required database tables.
"""
import argparse
import asyncio

from meeting_engine.config import settings
from meeting_engine.database import close_db, create_tables, drop_tables
from meeting_engine.logging_config import get_logger, setup_logging

logger = get_logger(__name__)

TABLES = ("users", "events", "integrations", "meetings")


async def init_db():
    """Initialize database tables."""
    logger.info("creating_tables", tables=list(TABLES))
    try:
        await create_tables()
        logger.info("tables_created", tables=list(TABLES))
    except Exception as e:
        logger.error("create_tables_failed", error=str(e))
        raise
    finally:
        await close_db()


async def reset_db():
    """Drop and recreate all tables. WARNING: This deletes all data!"""
    logger.warning("resetting_database", tables=list(TABLES))
    try:
        await drop_tables()
        logger.info("tables_dropped")
        await create_tables()
        logger.info("database_reset")
    except Exception as e:
        logger.error("reset_database_failed", error=str(e))
        raise
    finally:
        await close_db()


def main():
    parser = argparse.ArgumentParser(description="Create the meeting engine tables.")
    parser.add_argument("--reset", action="store_true", help="drop all tables first (deletes all data)")
    args = parser.parse_args()

    setup_logging(debug=settings.debug)
    if args.reset:
        response = input("This will DELETE ALL DATA. Continue? (yes/no): ")
        if response.lower() != "yes":
            logger.info("reset_cancelled")
            return
        asyncio.run(reset_db())
    else:
        asyncio.run(init_db())


if __name__ == "__main__":
    main()
