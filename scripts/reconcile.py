"""Fill in missing time entry durations.

Runs the same sweep the API runs periodically, once or until nothing is
left to repair. Useful after an outage or when the API runs with
RECONCILE_INTERVAL_SECONDS=0.

Usage:
    python scripts/reconcile.py \\
        --mongodb-url mongodb://localhost:27017 \\
        --db-name timeledger \\
        --until-clean
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from motor.motor_asyncio import AsyncIOMotorClient
from timeledger.services.reconciler import ReconciliationService
from timeledger.store.mongo import MongoTimeEntryStore

logger = logging.getLogger("reconcile")


async def reconcile(mongodb_url: str, db_name: str, batch_size: int, until_clean: bool) -> int:
    """Run sweeps against the database and return the number of repaired entries."""
    client = AsyncIOMotorClient(mongodb_url)
    try:
        store = MongoTimeEntryStore(client[db_name])
        service = ReconciliationService(store, batch_size=batch_size)

        total = 0
        while True:
            repaired = await service.sweep()
            total += repaired
            if not until_clean or repaired == 0:
                break
        return total
    finally:
        client.close()


async def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Fill in missing time entry durations")
    parser.add_argument(
        "--mongodb-url",
        default="mongodb://localhost:27017",
        help="MongoDB connection URL",
    )
    parser.add_argument(
        "--db-name",
        default="timeledger",
        help="Database name",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=500,
        help="Entries repaired per sweep",
    )
    parser.add_argument(
        "--until-clean",
        action="store_true",
        help="Keep sweeping until a sweep repairs nothing",
    )

    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    total = await reconcile(args.mongodb_url, args.db_name, args.batch_size, args.until_clean)
    logger.info("Done: %d entries repaired", total)


if __name__ == "__main__":
    asyncio.run(main())
