"""In-app notifications for the signed-in user."""
from fastapi import APIRouter, Query

from attendance_tracker.api.deps import CurrentUser, Leaves
from attendance_tracker.services.leaves import list_notifications, mark_notification_read

router = APIRouter()


@router.get("")
async def my_notifications(user: CurrentUser, store: Leaves, limit: int = Query(50, ge=1, le=200)):
    return await list_notifications(store, str(user.id), limit)


@router.post("/{notification_id}/read")
async def read_notification(notification_id: str, user: CurrentUser, store: Leaves):
    await mark_notification_read(store, str(user.id), notification_id)
    return {"status": "ok"}
