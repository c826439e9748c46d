"""MongoDB connection handling and index setup."""

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure, OperationFailure
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from glitchlab.config import settings

logger = logging.getLogger(__name__)

USERS = "users"
PENDING_USERS = "pendingUsers"
PASSWORD_RESETS = "password_resets"
WORKSHOPS = "workshops"
REVIEWS = "reviews"


async def create_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create the indexes the services rely on for uniqueness and lookups."""
    try:
        await db[USERS].create_index("email", unique=True)
        await db[USERS].create_index("registeredWorkshops")
        await db[USERS].create_index("role")

        await db[PENDING_USERS].create_index("email", unique=True)
        # TTL: abandoned registrations disappear after 24h
        await db[PENDING_USERS].create_index(
            "createdAt", expireAfterSeconds=settings.PENDING_USER_TTL_SECONDS
        )

        await db[PASSWORD_RESETS].create_index("email", unique=True)

        await db[WORKSHOPS].create_index("instructorIds")
        await db[WORKSHOPS].create_index([("startDate", ASCENDING)])

        # One review per user per workshop
        await db[REVIEWS].create_index(
            [("user", ASCENDING), ("workshop", ASCENDING)], unique=True
        )
        await db[REVIEWS].create_index([("featured", ASCENDING), ("createdAt", DESCENDING)])

        logger.info("MongoDB indexes ensured")
    except OperationFailure as e:
        logger.warning(f"Index creation error (may already exist): {e}")


class MongoDB:
    """Holds the process-wide motor client."""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type(ConnectionFailure),
        reraise=True,
    )
    async def _ping(self) -> None:
        await self.client.admin.command("ping")

    async def connect(self) -> None:
        """Connect to MongoDB and ensure indexes."""
        if self.db is not None:
            return

        self.client = AsyncIOMotorClient(
            settings.MONGODB_URI,
            maxPoolSize=settings.MONGODB_MAX_POOL_SIZE,
            serverSelectionTimeoutMS=settings.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
            retryWrites=True,
        )
        try:
            await self._ping()
        except ConnectionFailure as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            self.client.close()
            self.client = None
            raise

        self.db = self.client[settings.MONGODB_DATABASE]
        await create_indexes(self.db)
        logger.info(f"Connected to MongoDB database {settings.MONGODB_DATABASE}")

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
        self.client = None
        self.db = None


mongodb = MongoDB()


async def get_db() -> AsyncIOMotorDatabase:
    """Dependency to get the database handle."""
    if mongodb.db is None:
        await mongodb.connect()
    return mongodb.db
