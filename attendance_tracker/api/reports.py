"""Faculty reports."""
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from attendance_tracker.api.deps import FacultyOrAdmin, Store, is_admin
from attendance_tracker.exceptions import ValidationFailed
from attendance_tracker.services.aggregation import generate_batch_report
from attendance_tracker.services.dates import local_date_string, normalize_date_string

router = APIRouter()


@router.get("/batch-day")
async def batch_day_report(
    user: FacultyOrAdmin,
    store: Store,
    school: str = Query(...),
    batch: str = Query(...),
    subject: str = Query(...),
    date: Optional[str] = Query(None, description="YYYY-MM-DD, default today"),
):
    """Per-student status for one day plus historical subject and overall percentages."""
    subject = subject.strip()
    if not is_admin(user) and subject not in user.subjects:
        raise HTTPException(status_code=403, detail="You are not assigned to this subject")
    today = local_date_string()
    try:
        day = normalize_date_string(date) if date else today
    except ValueError:
        raise ValidationFailed("Invalid date format (YYYY-MM-DD)")
    if day > today:
        raise ValidationFailed("Cannot generate a report for a future date")

    report = await generate_batch_report(
        store,
        school=school.strip(),
        batch=batch.strip(),
        subject=subject,
        day=day,
    )
    return asdict(report)
