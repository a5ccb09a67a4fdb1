"""
Database helpers for the Course Shop API

MongoDB connection configured from the environment (.env supported).
One collection per entity, named after the lowercased entity:

- user
- category
- product
- order
- order_item
- payment
- counters (integer id sequences)
"""
import logging
import os
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from pymongo import MongoClient, ReturnDocument
from pymongo.database import Database

load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

db: Optional[Database] = None

if DATABASE_URL and DATABASE_NAME:
    client = MongoClient(DATABASE_URL, tz_aware=True)
    db = client[DATABASE_NAME]
else:
    logger.warning("DATABASE_URL / DATABASE_NAME not set, running without a database")


def next_id(database: Database, collection_name: str) -> int:
    """Allocate the next integer id for a collection (atomic $inc on counters)."""
    counter = database["counters"].find_one_and_update(
        {"_id": collection_name},
        {"$inc": {"seq": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return counter["seq"]


def reserve_id(database: Database, collection_name: str, used_id: int) -> None:
    """Move the sequence past an id that was assigned by the caller."""
    database["counters"].update_one(
        {"_id": collection_name},
        {"$max": {"seq": used_id}},
        upsert=True,
    )


def create_document(database: Database, collection_name: str, data: Dict[str, Any]) -> int:
    """Insert a document with a freshly allocated integer id and return the id."""
    doc = dict(data)
    doc["_id"] = next_id(database, collection_name)
    database[collection_name].insert_one(doc)
    return doc["_id"]


def get_documents(
    database: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
) -> List[Dict[str, Any]]:
    return list(database[collection_name].find(filter_dict or {}).sort("_id", 1))
