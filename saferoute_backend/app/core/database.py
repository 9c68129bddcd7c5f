"""
SafeRoute — MongoDB Connection Layer
Uses Motor (async MongoDB driver) for non-blocking database operations.
Holds the community feedback collections: areas, user_grid_feedbacks,
area_reports and app_feedbacks.
"""

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError
from typing import Optional
import logging

from app.core.config import settings

logger = logging.getLogger("saferoute.database")

_client: Optional[AsyncIOMotorClient] = None
_db: Optional[AsyncIOMotorDatabase] = None


async def connect_to_mongodb() -> None:
    """Initialize the MongoDB connection and create indexes.

    The API still serves route scoring when MongoDB is unreachable; community
    endpoints then answer 503.
    """
    global _client, _db

    logger.info("Connecting to MongoDB...")
    client = AsyncIOMotorClient(
        settings.mongodb_uri,
        serverSelectionTimeoutMS=int(settings.store_timeout_seconds * 1000),
    )

    try:
        await client.admin.command("ping")
    except PyMongoError as e:
        logger.error(f"MongoDB unavailable, community features disabled: {e}")
        client.close()
        return

    _client = client
    _db = client[settings.mongodb_db_name]
    logger.info(f"Connected to MongoDB database: {settings.mongodb_db_name}")

    await create_indexes(_db)


async def create_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create the lookup indexes used by the feedback store."""
    # Area report history — newest first per grid cell
    await db.area_reports.create_index([("gridId", 1), ("timestamp", -1)])
    await db.area_reports.create_index("userId")

    # Cooldown records are keyed by "{userId}_{gridId}"; userId index serves audits
    await db.user_grid_feedbacks.create_index("userId")

    logger.info("MongoDB indexes created/verified.")


async def close_mongodb_connection() -> None:
    """Gracefully close the MongoDB connection."""
    global _client, _db
    if _client:
        _client.close()
        _client = None
        _db = None
        logger.info("MongoDB connection closed.")


def is_connected() -> bool:
    return _db is not None


def get_database() -> AsyncIOMotorDatabase:
    """Return the active database instance. Raises if not connected."""
    if _db is None:
        raise RuntimeError(
            "MongoDB is not connected. Call connect_to_mongodb() first."
        )
    return _db
