"""MongoDB connection shared by the whole app."""
import logging
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from typing import Optional
from app.config import settings

logger = logging.getLogger(__name__)

# (collection, keys) pairs for every lookup the services run
INDEXES = (
    ("interviews", [("candidate", ASCENDING), ("status", ASCENDING)]),
    ("interviews", [("hr", ASCENDING), ("createdAt", DESCENDING)]),
    ("interviews", [("project", ASCENDING), ("createdAt", DESCENDING)]),
    ("projects", [("hr", ASCENDING), ("createdAt", DESCENDING)]),
    ("users", [("role", ASCENDING), ("isActive", ASCENDING)]),
)


class Database:
    """Holds the Motor client for the lifetime of the process."""

    client: Optional[AsyncIOMotorClient] = None
    db: Optional[AsyncIOMotorDatabase] = None

    @classmethod
    async def connect(cls):
        cls.client = AsyncIOMotorClient(settings.mongodb_url)
        cls.db = cls.client[settings.mongodb_db_name]
        await cls.ensure_indexes()
        logger.info("Connected to MongoDB: %s", settings.mongodb_db_name)

    @classmethod
    async def ensure_indexes(cls):
        for collection, keys in INDEXES:
            await cls.db[collection].create_index(keys)

    @classmethod
    async def disconnect(cls):
        if cls.client:
            cls.client.close()
            cls.client = None
            cls.db = None
            logger.info("Disconnected from MongoDB")

    @classmethod
    def get_database(cls) -> AsyncIOMotorDatabase:
        if cls.db is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return cls.db


async def get_db() -> AsyncIOMotorDatabase:
    """Route dependency for the shared database."""
    return Database.get_database()
