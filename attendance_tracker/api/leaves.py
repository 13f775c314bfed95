"""Leave requests: students submit, faculty decide."""
from fastapi import APIRouter

from attendance_tracker.api.deps import CurrentStudent, FacultyOrAdmin, Leaves, is_admin
from attendance_tracker.models.leave_request import LeaveDecision, LeaveRequestCreate
from attendance_tracker.services.fcm import send_leave_status_notification
from attendance_tracker.services.leaves import decide_leave_request, pending_leave_requests, submit_leave_request

router = APIRouter()


@router.post("")
async def create_leave_request(data: LeaveRequestCreate, student: CurrentStudent, store: Leaves):
    request_id, leave = await submit_leave_request(store, data, student)
    return {"id": request_id, **leave.model_dump()}


@router.get("/pending")
async def list_pending(user: FacultyOrAdmin, store: Leaves, subject: str | None = None):
    """Pending requests for the subjects the faculty member teaches, newest first."""
    subjects = [subject] if subject else list(user.subjects)
    if not is_admin(user):
        subjects = [s for s in subjects if s in user.subjects]
    return await pending_leave_requests(store, subjects)


@router.post("/{request_id}/decision")
async def decide(request_id: str, data: LeaveDecision, user: FacultyOrAdmin, store: Leaves):
    notification = await decide_leave_request(
        store,
        request_id,
        data,
        faculty_id=str(user.id),
        faculty_name=user.full_name,
        subjects=None if is_admin(user) else list(user.subjects),
        push=send_leave_status_notification,
    )
    return {"status": data.status.value, "notification": notification}
