from datetime import datetime
from typing import Optional

from beanie import Document
from pydantic import BaseModel, Field


class QrSessionBase(BaseModel):
    """A QR code issued by faculty; scans are accepted until ``expires_at``."""

    session_id: str
    school: str
    batch: str
    subject: str
    periods: int
    faculty_id: str
    faculty_name: Optional[str] = None
    class_time: Optional[str] = None  # HH:MM
    date: str  # YYYY-MM-DD (IST)
    issued_at: datetime = Field(default_factory=datetime.utcnow)
    expires_at: datetime
    refresh_count: int = 0
    refresh_nonce: Optional[str] = None


class QrSession(QrSessionBase, Document):
    class Settings:
        name = "qr_sessions"
        use_state_management = True
        indexes = ["session_id", "faculty_id"]


class QrSessionCreate(BaseModel):
    school: str
    batch: str
    subject: str
    periods: int = 1


class QrScanRequest(BaseModel):
    session_id: str
