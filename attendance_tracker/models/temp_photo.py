from datetime import datetime
from enum import Enum
from typing import Optional

from beanie import Document
from pydantic import BaseModel, Field


class TempPhotoStatus(str, Enum):
    PENDING_VERIFICATION = "pending_verification"
    PROCESSED = "processed"


class TempPhotoBase(BaseModel):
    """Photo submitted after a QR scan, waiting for faculty review.

    Not a source of truth: processed photos are swept away shortly after
    the faculty decision is saved.
    """

    student_id: str
    student_email: Optional[str] = None
    student_name: Optional[str] = None
    reg_number: Optional[str] = None
    school: str
    batch: str
    subject: str
    periods: int = 1
    date: str  # YYYY-MM-DD (IST)
    qr_session_id: Optional[str] = None
    faculty_id: Optional[str] = None
    faculty_name: Optional[str] = None
    class_time: Optional[str] = None
    photo_url: Optional[str] = None
    photo_key: Optional[str] = None
    status: TempPhotoStatus = TempPhotoStatus.PENDING_VERIFICATION
    faculty_decision: Optional[str] = None
    submitted_at: datetime = Field(default_factory=datetime.utcnow)
    processed_at: Optional[datetime] = None
    processed_by: Optional[str] = None


class TempPhoto(TempPhotoBase, Document):
    class Settings:
        name = "temp_photos"
        use_state_management = True
        indexes = [
            [("qr_session_id", 1), ("status", 1)],
            [("student_id", 1), ("date", 1), ("subject", 1)],
            "status",
        ]
