from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING
from settings.config import settings
from utils.logger import get_logger

logger = get_logger("DB_OPERATION")

async def create_indexes():
    await mongo_conn.users_collection.create_index("email", unique=True, sparse=True)
    await mongo_conn.users_collection.create_index("phone_number", unique=True, sparse=True)
    await mongo_conn.restaurants_collection.create_index([("is_active", ASCENDING), ("rating", DESCENDING)])
    await mongo_conn.bookings_collection.create_index(
        [("restaurant_id", ASCENDING), ("booking_date", ASCENDING), ("booking_time", ASCENDING)]
    )
    await mongo_conn.bookings_collection.create_index("user_id")
    await mongo_conn.refresh_tokens_collection.create_index("token", unique=True)
    await mongo_conn.refresh_tokens_collection.create_index("user_id")
    await mongo_conn.verification_codes_collection.create_index([("destination", ASCENDING), ("purpose", ASCENDING)])
    logger.info("Indexes created")

class MongoConnection:
    def __init__(self):
        logger.info("Initializing MongoDB Connection")
        self.bind(AsyncIOMotorClient(settings.MONGO_URI))

    def bind(self, client):
        """Point the connection (and every collection handle) at the given client."""
        self.client = client
        self.db = self.client[settings.DB_NAME]
        self.users_collection = self.db["users"]
        self.restaurants_collection = self.db["restaurants"]
        self.bookings_collection = self.db["bookings"]
        self.refresh_tokens_collection = self.db["refresh_tokens"]
        self.verification_codes_collection = self.db["verification_codes"]
        # per (restaurant, date, time) seat counters used to guard booking writes
        self.slot_occupancy_collection = self.db["slot_occupancy"]

    async def connect(self):
        try:
            # Force an actual connection & authentication check
            await self.db.command("ping")
            logger.info("Successfully connected to MongoDB and authenticated.")
            logger.info(f"Using Database: {settings.DB_NAME}")
        except Exception as e:
            logger.error(f"Could not connect to MongoDB: {e}")
            raise e

# Create the instance
mongo_conn = MongoConnection()
