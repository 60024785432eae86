"""
Key-value storage for FarmConnect

State that must outlive a request (the current session, the account
directory, the product catalog and forum posts) is kept in named slots.
When DATABASE_URL is set the slots live in a MongoDB collection, otherwise in
process memory.
"""
import copy
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pymongo import MongoClient

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "farmconnect")
STORAGE_COLLECTION = "storage"

db = None
if DATABASE_URL:
    # MongoClient connects lazily, so importing stays cheap without a server
    db = MongoClient(DATABASE_URL)[DATABASE_NAME]


class MemoryStorage:
    """Slots held in a dict; values are deep-copied in and out."""

    backend = "memory"

    def __init__(self):
        self._slots: Dict[str, Any] = {}

    def get(self, key: str) -> Optional[Any]:
        if key not in self._slots:
            return None
        return copy.deepcopy(self._slots[key])

    def set(self, key: str, value: Any) -> None:
        self._slots[key] = copy.deepcopy(value)

    def remove(self, key: str) -> None:
        self._slots.pop(key, None)

    def keys(self):
        return list(self._slots)


class MongoStorage:
    """One document per slot: {_id: <key>, value: <json>, updated_at}."""

    backend = "mongodb"

    def __init__(self, database, collection: str = STORAGE_COLLECTION):
        self.collection = database[collection]

    def get(self, key: str) -> Optional[Any]:
        doc = self.collection.find_one({"_id": key})
        return doc.get("value") if doc else None

    def set(self, key: str, value: Any) -> None:
        self.collection.replace_one(
            {"_id": key},
            {"_id": key, "value": value, "updated_at": datetime.now(timezone.utc)},
            upsert=True,
        )

    def remove(self, key: str) -> None:
        self.collection.delete_one({"_id": key})

    def keys(self):
        return [doc["_id"] for doc in self.collection.find({}, {"_id": 1})]


def get_storage():
    if db is not None:
        logger.info(f"Using MongoDB storage (database {DATABASE_NAME})")
        return MongoStorage(db)
    logger.info("DATABASE_URL not set, using in-memory storage")
    return MemoryStorage()
