import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from debtledger.core.config import Settings

logger = logging.getLogger(__name__)


class MongoDatabase:
    """MongoDB connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None


mongodb = MongoDatabase()


async def connect_to_mongo(settings: Settings) -> AsyncIOMotorDatabase:
    """Connect to MongoDB."""
    # tz_aware keeps transaction dates comparable with the aware datetimes
    # the models create
    mongodb.client = AsyncIOMotorClient(settings.MONGODB_URL, tz_aware=True)
    mongodb.db = mongodb.client[settings.DATABASE_NAME]

    await create_indexes(mongodb.db)
    logger.info("Connected to MongoDB: %s", settings.DATABASE_NAME)
    return mongodb.db


async def close_mongo_connection():
    """Disconnect from MongoDB."""
    if mongodb.client is not None:
        mongodb.client.close()
        mongodb.client = None
        mongodb.db = None
        logger.info("Disconnected from MongoDB")


async def create_indexes(db: AsyncIOMotorDatabase):
    """Create database indexes."""
    # Access codes identify friends on self-service lookup
    await db["friends"].create_index("access_code", unique=True)
    await db["friends"].create_index("name")

    # Transaction indexes
    await db["transactions"].create_index("friend_id")
    await db["transactions"].create_index("date")
    await db["transactions"].create_index([("friend_id", 1), ("status", 1)])

    # Bill indexes
    await db["bills"].create_index("date")
