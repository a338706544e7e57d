import logging
import os
from typing import Optional

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from errors import ConnectionFailure

logger = logging.getLogger(__name__)

# Use environment variables for connection details
DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "nubo_recent")
DATABASE_TIMEOUT_MS = int(os.getenv("DATABASE_TIMEOUT_MS", "5000"))


def get_client(url: Optional[str] = None, timeout_ms: Optional[int] = None) -> MongoClient:
    """Create a client and make sure the server answers.

    Raises ConnectionFailure when the server cannot be selected or pinged.
    """
    url = url or DATABASE_URL
    timeout_ms = timeout_ms or DATABASE_TIMEOUT_MS
    try:
        client = MongoClient(url, serverSelectionTimeoutMS=timeout_ms)
        client.admin.command("ping")
    except PyMongoError as e:
        raise ConnectionFailure(f"Cannot reach MongoDB: {e}") from e
    logger.info("Connected to MongoDB")
    return client


def get_database(client: MongoClient, name: Optional[str] = None) -> Database:
    return client[name or DATABASE_NAME]
