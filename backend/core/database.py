"""MongoDB connection management."""
from __future__ import annotations
import logging
from typing import Optional

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)

SERVER_SELECTION_TIMEOUT_MS = 5000


class DatabaseService:
    """Owns the process MongoDB client (connect lazily, ping, close)."""

    def __init__(self, uri: str, db_name: str):
        self.uri = uri
        self.db_name = db_name
        self._client: Optional[MongoClient] = None

    def connect(self) -> MongoClient:
        """Get or create the MongoDB client."""
        if self._client is None:
            self._client = MongoClient(self.uri, serverSelectionTimeoutMS=SERVER_SELECTION_TIMEOUT_MS)
        return self._client

    @property
    def database(self) -> Database:
        return self.connect()[self.db_name]

    def ping(self) -> bool:
        """Send a ping to confirm a successful connection.

        Returns:
            True when the server answered, False otherwise (the error is logged)
        """
        try:
            self.connect().admin.command("ping")
        except PyMongoError as exc:
            logger.error("MongoDB ping failed: %s", exc)
            return False
        logger.info("Pinged your deployment. You successfully connected to MongoDB!")
        return True

    def close(self) -> None:
        """Close the MongoDB connection."""
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("MongoDB connection closed")
