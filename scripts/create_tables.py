#!/usr/bin/env python3
"""
Create the booking tables in the configured database (DATABASE_URL).
Intended for local development; existing tables are left untouched.
"""

import asyncio

from salon_booking.core.database import Base, engine
import salon_booking.models  # noqa: F401  registers every table on Base.metadata


async def create_tables():
    print(f"Creating tables on {engine.url.render_as_string(hide_password=True)}")
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        print("✅ Tables created")
    except Exception as e:
        print(f"❌ Error creating tables: {e}")
        print("\nMake sure PostgreSQL is running and DATABASE_URL is correct.")
        raise
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(create_tables())
