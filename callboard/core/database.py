"""Database connectivity layer for Callboard."""

from __future__ import annotations

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from callboard.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Lazily establishes the MongoDB connection backing the document store."""

    def __init__(self, config: Optional[Settings] = None) -> None:
        self.config = config or default_settings
        self.mongodb: Optional[AsyncIOMotorClient] = None

    async def initialize(self) -> None:
        """Connect to MongoDB."""

        if self.mongodb is not None:
            return

        logger.info("Initializing Callboard database manager")
        self.mongodb = AsyncIOMotorClient(
            str(self.config.MONGODB_URL),
            serverSelectionTimeoutMS=self.config.MONGODB_TIMEOUT_MS,
            tz_aware=True,
        )
        logger.info("Database manager initialized (database=%s)", self.config.MONGODB_DATABASE)

    @property
    def database(self) -> Optional[AsyncIOMotorDatabase]:
        if self.mongodb is None:
            return None
        return self.mongodb[self.config.MONGODB_DATABASE]

    async def close(self) -> None:
        """Tear down the connection gracefully."""

        logger.info("Closing database connections")

        if self.mongodb is not None:
            self.mongodb.close()
            self.mongodb = None


# Singleton instance used by the service wiring
database_manager = DatabaseManager()
