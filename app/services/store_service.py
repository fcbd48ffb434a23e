from typing import List, Optional

from pymongo.database import Database

from app.db import next_id
from app.errors import NotFoundError
from app.models import AnalysisRecord, AnalysisResult, AnalysisSummary


class StoreService:
    """Insert-only store of analysis records, always read through the owner."""

    def __init__(self, db: Database):
        self.db = db
        self.collection = db["resumes"]

    def save(self, record: AnalysisRecord) -> int:
        record_id = next_id(self.db, "resumes")
        self.collection.insert_one({
            '_id': record_id,
            'user_id': record.user_id,
            'filename': record.storage_ref,
            'original_name': record.original_name,
            'analysis_result': record.result.model_dump(by_alias=True),
            'score': record.score,
            'result_source': record.result_source,
            'created_at': record.created_at,
        })
        record.id = record_id
        return record_id

    def list_by_user(self, user_id: int, limit: Optional[int] = None) -> List[AnalysisSummary]:
        cursor = self.collection.find(
            {'user_id': user_id},
            {'original_name': 1, 'score': 1, 'created_at': 1},
        ).sort([('created_at', -1), ('_id', -1)])
        if limit:
            cursor = cursor.limit(limit)

        return [
            AnalysisSummary(
                id=doc['_id'],
                original_name=doc['original_name'],
                score=doc.get('score'),
                created_at=doc['created_at'],
            )
            for doc in cursor
        ]

    def get_by_id_for_user(self, record_id: int, user_id: int) -> AnalysisRecord:
        # Other users' records are reported exactly like missing ones
        doc = self.collection.find_one({'_id': record_id, 'user_id': user_id})
        if not doc:
            raise NotFoundError()

        return AnalysisRecord(
            id=doc['_id'],
            user_id=doc['user_id'],
            storage_ref=doc['filename'],
            original_name=doc['original_name'],
            result=AnalysisResult.model_validate(doc['analysis_result']),
            score=doc['score'],
            result_source=doc['result_source'],
            created_at=doc['created_at'],
        )
