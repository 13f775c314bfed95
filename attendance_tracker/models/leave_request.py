from datetime import datetime
from enum import Enum
from typing import Optional

from beanie import Document
from pydantic import BaseModel, ConfigDict, Field


class LeaveStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class LeaveRequestBase(BaseModel):
    user_id: str
    student_email: Optional[str] = None
    student_name: Optional[str] = None
    reg_number: Optional[str] = None
    school: Optional[str] = None
    batch: Optional[str] = None
    subject: str
    date: str  # YYYY-MM-DD
    periods: int = 1
    reason: Optional[str] = None
    status: LeaveStatus = LeaveStatus.PENDING
    has_attachment: bool = False
    attachment_name: Optional[str] = None
    faculty_comment: Optional[str] = None
    processed_by: Optional[str] = None
    processed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class LeaveRequest(LeaveRequestBase, Document):
    class Settings:
        name = "leave_requests"
        use_state_management = True
        indexes = [[("status", 1), ("subject", 1)], "user_id"]


class LeaveRequestCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")
    subject: str
    date: str
    periods: int = 1
    reason: Optional[str] = None
    attachment_name: Optional[str] = None


class LeaveDecision(BaseModel):
    status: LeaveStatus
    comment: Optional[str] = None
