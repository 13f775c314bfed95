from datetime import datetime
from enum import Enum
from typing import Optional

from beanie import Document
from pydantic import BaseModel, Field
from pymongo import ASCENDING, IndexModel


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"


class AttendanceMethod(str, Enum):
    MANUAL = "manual"
    QR = "qr"
    QR_PHOTO = "qr_photo"


class DayStatus(str, Enum):
    """Per (student, session) outcome; absence may be recorded or inferred."""

    PRESENT = "present"
    ABSENT_RECORDED = "absent_recorded"
    ABSENT_INFERRED = "absent_inferred"


class AttendanceEventBase(BaseModel):
    """One student's attendance for one teaching session."""

    user_id: str
    student_name: Optional[str] = None
    reg_number: Optional[str] = None
    school: Optional[str] = None
    batch: Optional[str] = None
    # Legacy records may lack subject/date; aggregation skips them
    subject: Optional[str] = None
    date: Optional[str] = None  # YYYY-MM-DD (IST)
    periods: Optional[int] = None
    status: AttendanceStatus
    session_id: Optional[str] = None
    qr_session_id: Optional[str] = None
    marked_by: Optional[str] = None
    faculty_id: Optional[str] = None
    faculty_name: Optional[str] = None
    method: AttendanceMethod = AttendanceMethod.MANUAL
    has_photo: bool = False
    class_time: Optional[str] = None  # HH:MM
    marked_at: datetime = Field(default_factory=datetime.utcnow)
    verified_by: Optional[str] = None


class AttendanceEvent(AttendanceEventBase, Document):
    """Attendance event log; written once, never updated in place."""

    class Settings:
        name = "attendances"
        use_state_management = True
        indexes = [
            "user_id",
            "subject",
            [("subject", 1), ("date", 1)],
            [("user_id", 1), ("subject", 1)],
            # One event per student per session; legacy events without a session id are exempt
            IndexModel(
                [("user_id", ASCENDING), ("session_id", ASCENDING)],
                name="user_session_unique",
                unique=True,
                partialFilterExpression={"session_id": {"$type": "string"}},
            ),
        ]


class ManualAttendanceEntry(BaseModel):
    student_id: str
    status: AttendanceStatus


class ManualAttendanceRequest(BaseModel):
    school: str
    batch: str
    subject: str
    periods: int = 1
    attendance: list[ManualAttendanceEntry]
