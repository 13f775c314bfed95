"""Attendance summaries, day views and manual roll call."""
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from attendance_tracker.api.deps import CurrentStudent, FacultyOrAdmin, Store, is_admin
from attendance_tracker.exceptions import ValidationFailed
from attendance_tracker.models.attendance import ManualAttendanceRequest
from attendance_tracker.services.aggregation import StudentAttendanceSummary, compute_student_summary
from attendance_tracker.services.dates import local_date_string, normalize_date_string, previous_date_string
from attendance_tracker.services.manual import submit_manual_attendance
from attendance_tracker.services.membership import find_students

router = APIRouter()


def summary_response(summary: StudentAttendanceSummary) -> dict:
    data = asdict(summary)
    data["degraded"] = summary.degraded
    return data


def _as_of(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        return normalize_date_string(value)
    except ValueError:
        raise ValidationFailed("as_of must be in YYYY-MM-DD format")


@router.get("/summary/me")
async def my_summary(student: CurrentStudent, store: Store):
    summary = await compute_student_summary(store, student.id)
    return summary_response(summary)


@router.get("/summary/{student_id}")
async def student_summary(
    student_id: str,
    user: FacultyOrAdmin,
    store: Store,
    as_of: Optional[str] = Query(None, description="End of the window (YYYY-MM-DD), default today"),
):
    student = await store.get_student(student_id)
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")
    summary = await compute_student_summary(store, student_id, as_of=_as_of(as_of))
    return {"student": student, **summary_response(summary)}


@router.get("/today")
async def my_attendance_today(student: CurrentStudent, store: Store):
    today = local_date_string()
    events = await store.events_for_student_on(student.id, today)
    return {"date": today, "records": events}


@router.get("/yesterday")
async def my_attendance_yesterday(student: CurrentStudent, store: Store):
    yesterday = previous_date_string(local_date_string())
    events = await store.events_for_student_on(student.id, yesterday)
    return {"date": yesterday, "records": events}


@router.post("/manual")
async def mark_manual_attendance(data: ManualAttendanceRequest, user: FacultyOrAdmin, store: Store):
    """Save a manual roll call as a new session."""
    if not is_admin(user) and data.subject.strip() not in user.subjects:
        raise HTTPException(status_code=403, detail="You are not assigned to this subject")
    result = await submit_manual_attendance(
        store,
        data,
        faculty_id=str(user.id),
        faculty_name=user.full_name,
    )
    return asdict(result)


@router.get("/students")
async def batch_roster(user: FacultyOrAdmin, store: Store, school: str = Query(...), batch: str = Query(...)):
    """Roster used for manual roll call."""
    return await find_students(store, school, batch)
