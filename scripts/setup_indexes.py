"""Create the MongoDB indexes Callboard relies on and backfill lookup fields."""

from __future__ import annotations

import asyncio
import logging

from pymongo import ASCENDING, DESCENDING

from callboard.core.config import settings
from callboard.core.database import database_manager
from callboard.models import RosterKind

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


PRODUCTION_INDEXES = [
    ("created_by_created_at", [("created_by", ASCENDING), ("created_at", DESCENDING)]),
    ("admin_ids_created_at", [("admin_ids", ASCENDING), ("created_at", DESCENDING)]),
]


async def setup_indexes(database) -> None:
    productions = database["productions"]
    for name, keys in PRODUCTION_INDEXES:
        await productions.create_index(keys, name=name)
        logger.info("Ensured index productions.%s", name)

    for kind in RosterKind:
        await database[kind.collection].create_index(
            [("_parent", ASCENDING), ("created_at", DESCENDING)],
            name="parent_created_at",
        )
        logger.info("Ensured index %s.parent_created_at", kind.collection)


async def backfill_productions(database) -> None:
    """Give productions written before versioning a ``version`` and ``admin_ids``."""

    productions = database["productions"]
    updated = 0
    async for document in productions.find({"$or": [{"version": {"$exists": False}}, {"admin_ids": {"$exists": False}}]}):
        admin_ids = [admin["id"] for admin in document.get("admins", []) if "id" in admin]
        await productions.update_one(
            {"_id": document["_id"]},
            {"$set": {"admin_ids": admin_ids, "version": document.get("version", 1)}},
        )
        updated += 1
    logger.info("Backfilled %d production documents", updated)


async def main() -> None:
    await database_manager.initialize()
    database = database_manager.database
    await setup_indexes(database)
    await backfill_productions(database)
    await database_manager.close()
    logger.info("Callboard setup complete")


if __name__ == "__main__":
    asyncio.run(main())
