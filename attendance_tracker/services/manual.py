"""Manual roll call submitted by faculty."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from attendance_tracker.exceptions import ValidationFailed
from attendance_tracker.models.attendance import (
    AttendanceEventBase,
    AttendanceMethod,
    AttendanceStatus,
    ManualAttendanceRequest,
)
from attendance_tracker.services.dates import class_time, local_date_string
from attendance_tracker.services.membership import lookup_students
from attendance_tracker.services.qr import generate_session_id
from attendance_tracker.services.store import AttendanceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ManualSubmission:
    session_id: str
    date: str
    periods: int
    saved: int
    present: int
    absent: int
    skipped_students: tuple[str, ...] = ()
    # Earlier manual sessions by the same faculty for this subject and batch today
    existing_sessions: tuple[str, ...] = ()


async def submit_manual_attendance(
    store: AttendanceStore,
    request: ManualAttendanceRequest,
    *,
    faculty_id: str,
    faculty_name: Optional[str] = None,
    now: datetime | None = None,
) -> ManualSubmission:
    """Write one event per roster entry under a fresh manual session id.

    A second submission on the same day is a separate session; the earlier
    ones are reported back so the client can warn about double counting.
    """
    now = now or datetime.utcnow()
    school = request.school.strip()
    batch = request.batch.strip()
    subject = request.subject.strip()
    if not school or not batch or not subject:
        raise ValidationFailed("School, batch and subject are required")
    if not request.attendance:
        raise ValidationFailed("No attendance entries submitted")

    periods = max(1, request.periods or 1)
    day = local_date_string(now)
    existing = await store.manual_session_ids(faculty_id=faculty_id, subject=subject, batch=batch, day=day)
    if existing:
        logger.warning(
            f"Faculty {faculty_id} already submitted {len(existing)} manual sessions "
            f"for {subject} ({batch}) on {day}; creating another"
        )

    session_id = generate_session_id(subject, batch, now, prefix="manual_")
    marked_at_time = class_time(now)
    events: list[AttendanceEventBase] = []
    skipped: list[str] = []
    entries = {entry.student_id: entry.status for entry in request.attendance}
    students = await lookup_students(store, entries)
    for student_id, status in entries.items():
        student = students.get(student_id)
        if not student:
            logger.warning(f"Manual attendance: student {student_id} not found, skipping")
            skipped.append(student_id)
            continue
        events.append(
            AttendanceEventBase(
                user_id=student.id,
                student_name=student.full_name,
                reg_number=student.reg_number,
                school=school,
                batch=batch,
                subject=subject,
                date=day,
                periods=periods,
                status=status,
                session_id=session_id,
                marked_by=faculty_id,
                faculty_id=faculty_id,
                faculty_name=faculty_name,
                method=AttendanceMethod.MANUAL,
                class_time=marked_at_time,
                marked_at=now,
            )
        )

    if not events:
        raise ValidationFailed("None of the submitted students were found")

    saved = await store.insert_events(events)
    present = sum(1 for e in events if e.status == AttendanceStatus.PRESENT)
    logger.info(f"Manual session {session_id}: {present} present, {len(events) - present} absent")
    return ManualSubmission(
        session_id=session_id,
        date=day,
        periods=periods,
        saved=saved,
        present=present,
        absent=len(events) - present,
        skipped_students=tuple(skipped),
        existing_sessions=tuple(existing),
    )
