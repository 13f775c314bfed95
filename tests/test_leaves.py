from datetime import datetime, timedelta

import pytest

from attendance_tracker.exceptions import Conflict, Forbidden, NotFound, ValidationFailed
from attendance_tracker.models.leave_request import LeaveDecision, LeaveRequestCreate, LeaveStatus
from attendance_tracker.models.user import StudentProfile
from attendance_tracker.services.leaves import (
    decide_leave_request,
    list_notifications,
    mark_notification_read,
    pending_leave_requests,
    submit_leave_request,
)

NOW = datetime(2025, 9, 20, 4, 30)
STUDENT = StudentProfile(id="a", full_name="Asha", email="a@example.com", school="SoCS", batch="B1")


async def _submit(store, subject="DSA", day="2025-09-22", now=NOW):
    request_id, _ = await submit_leave_request(
        store, LeaveRequestCreate(subject=subject, date=day, reason="Fever"), STUDENT, now=now
    )
    return request_id


async def test_past_dates_are_rejected(leave_store):
    with pytest.raises(ValidationFailed):
        await _submit(leave_store, day="2025-09-19")


async def test_today_is_accepted_and_date_is_normalized(leave_store):
    request_id = await _submit(leave_store, day="2025-09-20")

    assert leave_store.requests[request_id].date == "2025-09-20"
    assert leave_store.requests[request_id].status == LeaveStatus.PENDING


async def test_pending_list_is_newest_first_and_scoped_to_subjects(leave_store):
    older = await _submit(leave_store, now=NOW)
    newer = await _submit(leave_store, now=NOW + timedelta(hours=1))
    await _submit(leave_store, subject="OS")

    pending = await pending_leave_requests(leave_store, ["DSA"])
    again = await pending_leave_requests(leave_store, ["DSA"])

    assert [r.id for r in pending] == [newer, older]
    assert [r.id for r in again] == [newer, older]


async def test_decision_notifies_and_pushes(leave_store):
    request_id = await _submit(leave_store)
    leave_store.tokens["a"] = ["token-1"]
    pushed = []

    async def push(tokens, notification):
        pushed.append((list(tokens), notification.status))

    notification = await decide_leave_request(
        leave_store,
        request_id,
        LeaveDecision(status=LeaveStatus.APPROVED, comment="Get well soon"),
        faculty_id="fac1",
        faculty_name="Dr. Rao",
        subjects=["DSA"],
        push=push,
    )

    assert leave_store.requests[request_id].status == LeaveStatus.APPROVED
    assert notification.type == "leave_status"
    assert notification.comment == "Get well soon"
    assert pushed == [(["token-1"], "approved")]
    assert len(await list_notifications(leave_store, "a")) == 1


async def test_second_decision_is_rejected(leave_store):
    request_id = await _submit(leave_store)
    decision = LeaveDecision(status=LeaveStatus.REJECTED)
    await decide_leave_request(leave_store, request_id, decision, faculty_id="fac1")

    with pytest.raises(Conflict):
        await decide_leave_request(leave_store, request_id, decision, faculty_id="fac1")


async def test_faculty_cannot_decide_other_subjects(leave_store):
    request_id = await _submit(leave_store, subject="OS")

    with pytest.raises(Forbidden):
        await decide_leave_request(
            leave_store, request_id, LeaveDecision(status=LeaveStatus.APPROVED), faculty_id="fac1", subjects=["DSA"]
        )


async def test_pending_is_not_a_decision(leave_store):
    request_id = await _submit(leave_store)

    with pytest.raises(ValidationFailed):
        await decide_leave_request(leave_store, request_id, LeaveDecision(status=LeaveStatus.PENDING), faculty_id="fac1")


async def test_mark_notification_read(leave_store):
    request_id = await _submit(leave_store)
    await decide_leave_request(leave_store, request_id, LeaveDecision(status=LeaveStatus.APPROVED), faculty_id="fac1")
    notification_id = next(iter(leave_store.notifications))

    await mark_notification_read(leave_store, "a", notification_id)

    assert leave_store.notifications[notification_id].read is True
    with pytest.raises(NotFound):
        await mark_notification_read(leave_store, "someone-else", notification_id)
