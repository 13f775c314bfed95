"""Which students belong to a school and batch."""
from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from attendance_tracker.exceptions import StoreUnavailable, ValidationFailed
from attendance_tracker.models.user import StudentProfile
from attendance_tracker.services.store import AttendanceStore

logger = logging.getLogger(__name__)


def profile_from_user(user) -> StudentProfile:
    return StudentProfile(
        id=str(user.id),
        full_name=user.full_name,
        email=str(user.email) if user.email else None,
        reg_number=user.reg_number,
        school=user.school,
        batch=user.batch,
    )


async def find_students(store: AttendanceStore, school: Optional[str], batch: Optional[str]) -> list[StudentProfile]:
    school = (school or "").strip()
    batch = (batch or "").strip()
    if not school or not batch:
        raise ValidationFailed("School and batch are required")
    students = await store.find_students(school, batch)
    logger.debug(f"Found {len(students)} students in {school}/{batch}")
    return students


async def lookup_students(store: AttendanceStore, student_ids: Iterable[str]) -> dict[str, StudentProfile]:
    """Resolve profiles one lookup per id, in parallel.

    A failed lookup is logged and the student left out; it does not abort the
    rest. Unknown ids are simply absent from the result.
    """
    ids = list(dict.fromkeys(student_ids))
    results = await asyncio.gather(*(store.get_student(i) for i in ids), return_exceptions=True)
    found: dict[str, StudentProfile] = {}
    for student_id, result in zip(ids, results):
        if isinstance(result, StoreUnavailable):
            logger.error(f"Error fetching student {student_id}: {result}")
            continue
        if isinstance(result, BaseException):
            raise result
        if result is not None:
            found[student_id] = result
    return found
