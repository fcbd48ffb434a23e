from datetime import datetime

import pytest

from app.errors import NotFoundError
from app.models import FALLBACK_RESULT, AnalysisRecord, AnalysisResult
from app.services.store_service import StoreService

from conftest import ANALYSIS


def make_record(user_id=1, created_at=None, source="fenced", name="resume.pdf"):
    result = AnalysisResult.model_validate(ANALYSIS)
    record = AnalysisRecord(
        user_id=user_id,
        storage_ref="resume-1700000000000-abc.pdf",
        original_name=name,
        result=result,
        score=result.score,
        result_source=source,
    )
    if created_at:
        record.created_at = created_at
    return record


def test_round_trip_is_field_for_field(db):
    store = StoreService(db)
    record = make_record()

    record_id = store.save(record)
    fetched = store.get_by_id_for_user(record_id, 1)

    assert fetched.id == record_id == record.id
    assert fetched.model_dump() == record.model_dump()
    assert fetched.result_source == "fenced"
    assert fetched.created_at == record.created_at


def test_fallback_provenance_survives_storage(db):
    store = StoreService(db)
    record = make_record(source="fallback")
    record.result = FALLBACK_RESULT
    record.score = 75

    fetched = store.get_by_id_for_user(store.save(record), 1)

    assert fetched.is_fallback
    assert fetched.result == FALLBACK_RESULT


def test_other_owner_gets_not_found(db):
    store = StoreService(db)
    record_id = store.save(make_record(user_id=1))

    with pytest.raises(NotFoundError) as other:
        store.get_by_id_for_user(record_id, 2)
    with pytest.raises(NotFoundError) as missing:
        store.get_by_id_for_user(record_id + 100, 2)

    assert other.value.detail == missing.value.detail


def test_ids_are_sequential(db):
    store = StoreService(db)

    first = store.save(make_record())
    second = store.save(make_record())

    assert second == first + 1


def test_list_by_user_newest_first_ties_by_id(db):
    store = StoreService(db)
    same_time = datetime(2026, 1, 2, 12, 0, 0)
    old = store.save(make_record(created_at=datetime(2026, 1, 1), name="old.pdf"))
    tie_a = store.save(make_record(created_at=same_time, name="a.pdf"))
    tie_b = store.save(make_record(created_at=same_time, name="b.pdf"))
    store.save(make_record(user_id=2, name="someone-else.pdf"))

    summaries = store.list_by_user(1)

    assert [s.id for s in summaries] == [tie_b, tie_a, old]
    assert summaries[0].model_dump(by_alias=True, mode="json") == {
        "id": tie_b,
        "originalName": "b.pdf",
        "score": 88,
        "createdAt": "2026-01-02T12:00:00",
    }


def test_list_by_user_limit(db):
    store = StoreService(db)
    for _ in range(3):
        store.save(make_record())

    assert len(store.list_by_user(1, limit=2)) == 2
    assert store.list_by_user(99) == []
