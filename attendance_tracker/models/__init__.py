"""Beanie document models and Pydantic schemas."""
from attendance_tracker.models.user import User, UserRole, UserCreate, StudentProfile, StudentProfileUpdate
from attendance_tracker.models.attendance import (
    AttendanceEvent,
    AttendanceEventBase,
    AttendanceMethod,
    AttendanceStatus,
    DayStatus,
    ManualAttendanceEntry,
    ManualAttendanceRequest,
)
from attendance_tracker.models.temp_photo import TempPhoto, TempPhotoBase, TempPhotoStatus
from attendance_tracker.models.qr_session import QrSession, QrSessionBase, QrSessionCreate, QrScanRequest
from attendance_tracker.models.leave_request import (
    LeaveRequest,
    LeaveRequestBase,
    LeaveRequestCreate,
    LeaveDecision,
    LeaveStatus,
)
from attendance_tracker.models.notification import Notification, NotificationBase

__all__ = [
    "User",
    "UserRole",
    "UserCreate",
    "StudentProfile",
    "StudentProfileUpdate",
    "AttendanceEvent",
    "AttendanceEventBase",
    "AttendanceMethod",
    "AttendanceStatus",
    "DayStatus",
    "ManualAttendanceEntry",
    "ManualAttendanceRequest",
    "TempPhoto",
    "TempPhotoBase",
    "TempPhotoStatus",
    "QrSession",
    "QrSessionBase",
    "QrSessionCreate",
    "QrScanRequest",
    "LeaveRequest",
    "LeaveRequestBase",
    "LeaveRequestCreate",
    "LeaveDecision",
    "LeaveStatus",
    "Notification",
    "NotificationBase",
]
