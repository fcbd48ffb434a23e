from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.database import Database

from app.config import Settings


def get_database(client: MongoClient, settings: Settings) -> Database:
    return client[settings.mongodb_database]


def ensure_indexes(db: Database) -> None:
    db["users"].create_index([("email", ASCENDING)], unique=True)
    db["api_keys"].create_index(
        [("user_id", ASCENDING), ("service_name", ASCENDING)], unique=True
    )
    db["resumes"].create_index(
        [("user_id", ASCENDING), ("created_at", DESCENDING), ("_id", DESCENDING)]
    )


def next_id(db: Database, name: str) -> int:
    """Atomically allocate the next integer id for a collection."""
    counter = db["counters"].find_one_and_update(
        {"_id": name},
        {"$inc": {"seq": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return counter["seq"]
