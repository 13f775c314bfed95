from datetime import datetime
from typing import Optional

from beanie import Document
from pydantic import BaseModel, Field


class NotificationBase(BaseModel):
    """In-app notification shown on the student dashboard."""

    user_id: str
    type: str  # leave_status
    title: str
    message: str
    read: bool = False
    related_request_id: Optional[str] = None
    subject: Optional[str] = None
    leave_date: Optional[str] = None
    faculty_name: Optional[str] = None
    status: Optional[str] = None
    comment: str = ""
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Notification(NotificationBase, Document):
    class Settings:
        name = "notifications"
        use_state_management = True
        indexes = [[("user_id", 1), ("created_at", -1)]]
