#!/usr/bin/env python3
"""
One-time migration: copy the provider reference that older appointments kept
in their metadata ("preferredEmployeeId") into the provider_id column.

Safe to run more than once; only rows with a NULL provider_id are touched.
"""

import argparse
import asyncio

from salon_booking.core.database import AsyncSessionLocal, engine
from salon_booking.core.logging import configure_logging
from salon_booking.repositories.appointments import AppointmentRepository


async def backfill(batch_size: int) -> int:
    try:
        async with AsyncSessionLocal() as session:
            return await AppointmentRepository(session).backfill_provider_from_metadata(
                batch_size=batch_size
            )
    finally:
        await engine.dispose()


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--batch-size", type=int, default=500, help="Rows to update per commit"
    )
    args = parser.parse_args()

    configure_logging()
    migrated = asyncio.run(backfill(args.batch_size))
    print(f"✅ Backfilled provider_id on {migrated} appointments")


if __name__ == "__main__":
    main()
