import logging
from typing import List, Optional

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from app.errors import ValidationError
from app.models import utcnow

logger = logging.getLogger(__name__)


class KeyService:
    """Per-user, per-service API key vault. Secrets are write-only to callers."""

    def __init__(self, db: Database):
        self.collection = db["api_keys"]

    def upsert(self, user_id: int, service_name: str, api_key: str) -> bool:
        """
        Store or overwrite the key for (user_id, service_name) in one round trip.
        Returns: True when a new record was created, False when one was updated.
        """
        if not service_name or not api_key:
            raise ValidationError("Service name and API key are required")

        query = {'user_id': user_id, 'service_name': service_name}
        update = {
            '$set': {'api_key': api_key},
            '$setOnInsert': {'created_at': utcnow()},
        }
        try:
            result = self.collection.update_one(query, update, upsert=True)
        except DuplicateKeyError:
            # A concurrent first insert for the same pair won; the record exists now.
            logger.info(f"Concurrent API key insert for user {user_id}, retrying as update")
            self.collection.update_one(query, {'$set': {'api_key': api_key}})
            return False

        return result.upserted_id is not None

    def get(self, user_id: int, service_name: str) -> Optional[str]:
        doc = self.collection.find_one(
            {'user_id': user_id, 'service_name': service_name},
            {'api_key': 1},
        )
        return doc['api_key'] if doc else None

    def list_services(self, user_id: int) -> List[dict]:
        docs = self.collection.find(
            {'user_id': user_id},
            {'_id': 0, 'service_name': 1, 'created_at': 1},
        ).sort('service_name', 1)
        return [
            {'serviceName': doc['service_name'], 'createdAt': doc['created_at'].isoformat()}
            for doc in docs
        ]
