#!/usr/bin/env python3
"""
Script to create database tables directly using SQLAlchemy
"""
import asyncio

from fee_flywheel.core.database import DatabaseManager, close_database, init_database
from fee_flywheel.models.base import Base
import fee_flywheel.models  # noqa: F401  registers all models


async def main():
    """Create all tables in the configured database"""
    print("Creating database tables...")

    await init_database()
    try:
        await DatabaseManager.create_tables()
    finally:
        await close_database()

    print("All tables created successfully!")

    print("\nCreated tables:")
    for table_name in Base.metadata.tables.keys():
        print(f"  - {table_name}")


if __name__ == "__main__":
    asyncio.run(main())
