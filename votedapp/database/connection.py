import logging
from typing import Optional

from pymongo import MongoClient
from pymongo.database import Database

from votedapp.config import MONGO_DB, MONGO_URI

logger = logging.getLogger(__name__)

_client: Optional[MongoClient] = None


def get_database() -> Database:
    """Get or create the process-wide MongoDB database handle."""
    global _client
    if not MONGO_URI:
        raise ValueError("MONGO_URI not found. Check your .env file.")
    if not MONGO_DB:
        raise ValueError("MONGO_DB not found. Check your .env file.")

    if _client is None:
        _client = MongoClient(MONGO_URI)
        logger.info(f"MongoDB client created for database: {MONGO_DB}")
    return _client[MONGO_DB]


def close_database() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
        logger.info("MongoDB connection closed")
