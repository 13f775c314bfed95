"""Leave requests, faculty decisions and the notifications they produce."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional, Sequence

from attendance_tracker.exceptions import Conflict, Forbidden, NotFound, ValidationFailed
from attendance_tracker.models.leave_request import LeaveDecision, LeaveRequestBase, LeaveRequestCreate, LeaveStatus
from attendance_tracker.models.notification import NotificationBase
from attendance_tracker.models.user import StudentProfile
from attendance_tracker.services.dates import local_date_string, normalize_date_string
from attendance_tracker.services.store import LeaveStore

logger = logging.getLogger(__name__)

PushSender = Callable[[Sequence[str], NotificationBase], Awaitable[None]]

LEAVE_STATUS = "leave_status"


async def submit_leave_request(
    store: LeaveStore,
    request: LeaveRequestCreate,
    student: StudentProfile,
    now: datetime | None = None,
) -> tuple[str, LeaveRequestBase]:
    subject = request.subject.strip()
    if not subject:
        raise ValidationFailed("Subject is required")
    try:
        day = normalize_date_string(request.date)
    except ValueError:
        raise ValidationFailed("Date must be in YYYY-MM-DD format")
    today = local_date_string(now)
    if day < today:
        raise ValidationFailed("Leave cannot be requested for a past date")

    leave = LeaveRequestBase(
        user_id=student.id,
        student_email=student.email,
        student_name=student.full_name,
        reg_number=student.reg_number,
        school=student.school,
        batch=student.batch,
        subject=subject,
        date=day,
        periods=max(1, request.periods or 1),
        reason=request.reason,
        has_attachment=bool(request.attachment_name),
        attachment_name=request.attachment_name,
        created_at=now or datetime.utcnow(),
    )
    request_id = await store.add_leave_request(leave)
    logger.info(f"Leave request {request_id} submitted by {student.id} for {subject} on {day}")
    return request_id, leave


async def pending_leave_requests(store: LeaveStore, subjects: Sequence[str]) -> list[LeaveRequestBase]:
    """Pending requests for the given subjects, newest first."""
    if not subjects:
        return []
    requests = await store.pending_leave_requests(subjects)
    return sorted(requests, key=lambda r: r.created_at, reverse=True)


def _notification(leave: LeaveRequestBase, request_id: str, decision: LeaveDecision, faculty_name: Optional[str]) -> NotificationBase:
    verdict = "approved" if decision.status == LeaveStatus.APPROVED else "rejected"
    message = f"Your leave request for {leave.subject} on {leave.date} was {verdict}"
    if faculty_name:
        message += f" by {faculty_name}"
    if decision.comment:
        message += f": {decision.comment}"
    return NotificationBase(
        user_id=leave.user_id,
        type=LEAVE_STATUS,
        title=f"Leave request {verdict}",
        message=message,
        related_request_id=request_id,
        subject=leave.subject,
        leave_date=leave.date,
        faculty_name=faculty_name,
        status=decision.status.value,
        comment=decision.comment or "",
    )


async def decide_leave_request(
    store: LeaveStore,
    request_id: str,
    decision: LeaveDecision,
    *,
    faculty_id: str,
    faculty_name: Optional[str] = None,
    subjects: Optional[Sequence[str]] = None,
    push: Optional[PushSender] = None,
    now: datetime | None = None,
) -> NotificationBase:
    """Approve or reject a pending request and notify the student.

    ``subjects`` limits the decision to requests for subjects the faculty
    member teaches; admins pass None.
    """
    if decision.status == LeaveStatus.PENDING:
        raise ValidationFailed("Decision must be approved or rejected")
    leave = await store.get_leave_request(request_id)
    if not leave:
        raise NotFound(f"Leave request {request_id} not found")
    if subjects is not None and leave.subject not in subjects:
        raise Forbidden(f"You do not teach {leave.subject}")
    if leave.status != LeaveStatus.PENDING:
        raise Conflict(f"Leave request {request_id} was already {leave.status.value}")

    updated = await store.update_leave_status(
        request_id,
        status=decision.status,
        processed_by=faculty_id,
        processed_at=now or datetime.utcnow(),
        comment=decision.comment,
    )
    if not updated:
        # Another faculty member decided it between our read and write
        raise Conflict(f"Leave request {request_id} is no longer pending")

    notification = _notification(leave, request_id, decision, faculty_name)
    await store.add_notification(notification)
    logger.info(f"Leave request {request_id} {decision.status.value} by {faculty_id}")

    if push is not None:
        tokens = await store.fcm_tokens_for(leave.user_id)
        if tokens:
            await push(tokens, notification)
    return notification


async def list_notifications(store: LeaveStore, user_id: str, limit: int = 50) -> list[NotificationBase]:
    notifications = await store.notifications_for(user_id, limit)
    return sorted(notifications, key=lambda n: n.created_at, reverse=True)


async def mark_notification_read(store: LeaveStore, user_id: str, notification_id: str) -> None:
    if not await store.mark_notification_read(user_id, notification_id):
        raise NotFound(f"Notification {notification_id} not found")
