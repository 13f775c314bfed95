import pytest
from pymongo.errors import AutoReconnect, BulkWriteError, DuplicateKeyError

from attendance_tracker.exceptions import Conflict, StoreUnavailable, StoreWriteFailed
from attendance_tracker.models.attendance import AttendanceEvent
from attendance_tracker.services.mongo_store import _reads, _writes


def _raising(error):
    async def operation():
        raise error

    return operation


async def test_duplicate_key_on_write_is_a_conflict():
    with pytest.raises(Conflict):
        await _writes(_raising(DuplicateKeyError("E11000 duplicate key error")))()


async def test_duplicate_in_batch_insert_is_a_conflict():
    error = BulkWriteError({"writeErrors": [{"index": 1, "code": 11000, "errmsg": "E11000 duplicate key error"}]})

    with pytest.raises(Conflict):
        await _writes(_raising(error))()


async def test_other_write_errors_are_store_failures():
    error = BulkWriteError({"writeErrors": [{"index": 0, "code": 121, "errmsg": "Document failed validation"}]})

    with pytest.raises(StoreWriteFailed):
        await _writes(_raising(error))()
    with pytest.raises(StoreWriteFailed):
        await _writes(_raising(AutoReconnect("primary stepped down")))()


async def test_read_errors_are_store_unavailable():
    with pytest.raises(StoreUnavailable):
        await _reads(_raising(AutoReconnect("connection reset")))()


def test_events_are_unique_per_student_and_session():
    unique = [
        index.document
        for index in AttendanceEvent.Settings.indexes
        if not isinstance(index, (str, list)) and index.document.get("unique")
    ]

    assert len(unique) == 1
    assert dict(unique[0]["key"]) == {"user_id": 1, "session_id": 1}
    assert unique[0]["partialFilterExpression"] == {"session_id": {"$type": "string"}}
