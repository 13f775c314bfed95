from datetime import datetime

import pytest

from attendance_tracker.exceptions import StoreWriteFailed, ValidationFailed
from attendance_tracker.models.attendance import AttendanceStatus, ManualAttendanceEntry, ManualAttendanceRequest
from attendance_tracker.services.manual import submit_manual_attendance

NOW = datetime(2025, 9, 20, 4, 30)


def _request(entries, periods=2):
    return ManualAttendanceRequest(
        school="SoCS",
        batch="B1",
        subject="DSA",
        periods=periods,
        attendance=[ManualAttendanceEntry(student_id=s, status=st) for s, st in entries],
    )


@pytest.fixture
def roster(store):
    store.add_student("a", "Asha")
    store.add_student("b", "Bala")
    return store


async def test_roll_call_is_one_session(roster):
    result = await submit_manual_attendance(
        roster,
        _request([("a", AttendanceStatus.PRESENT), ("b", AttendanceStatus.ABSENT)]),
        faculty_id="fac1",
        now=NOW,
    )

    assert result.session_id.startswith("manual_DSA_B1_")
    assert (result.saved, result.present, result.absent) == (2, 1, 1)
    assert {e.session_id for e in roster.events} == {result.session_id}
    assert all(e.periods == 2 and e.date == "2025-09-20" for e in roster.events)


async def test_second_roll_call_same_day_reports_earlier_session(roster):
    first = await submit_manual_attendance(
        roster, _request([("a", AttendanceStatus.PRESENT)]), faculty_id="fac1", now=NOW
    )
    second = await submit_manual_attendance(
        roster, _request([("a", AttendanceStatus.PRESENT)]), faculty_id="fac1", now=NOW
    )

    assert second.session_id != first.session_id
    assert second.existing_sessions == (first.session_id,)


async def test_periods_are_clamped_to_one(roster):
    result = await submit_manual_attendance(
        roster, _request([("a", AttendanceStatus.PRESENT)], periods=0), faculty_id="fac1", now=NOW
    )

    assert result.periods == 1


async def test_unknown_students_are_skipped(roster):
    result = await submit_manual_attendance(
        roster,
        _request([("a", AttendanceStatus.PRESENT), ("ghost", AttendanceStatus.PRESENT)]),
        faculty_id="fac1",
        now=NOW,
    )

    assert result.skipped_students == ("ghost",)
    assert result.saved == 1


async def test_empty_roll_call_is_rejected(roster):
    with pytest.raises(ValidationFailed):
        await submit_manual_attendance(roster, _request([]), faculty_id="fac1", now=NOW)


async def test_failed_batch_writes_nothing(roster):
    roster.fail_writes = True

    with pytest.raises(StoreWriteFailed):
        await submit_manual_attendance(
            roster,
            _request([("a", AttendanceStatus.PRESENT), ("b", AttendanceStatus.PRESENT)]),
            faculty_id="fac1",
            now=NOW,
        )
    assert roster.events == []
