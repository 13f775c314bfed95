"""Storage interfaces used by the attendance services.

Implementations raise ``StoreUnavailable`` for failed reads and
``StoreWriteFailed`` for rejected writes; batch writes are all-or-nothing.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from attendance_tracker.models.attendance import AttendanceEventBase
from attendance_tracker.models.leave_request import LeaveRequestBase, LeaveStatus
from attendance_tracker.models.notification import NotificationBase
from attendance_tracker.models.qr_session import QrSessionBase
from attendance_tracker.models.temp_photo import TempPhotoBase
from attendance_tracker.models.user import StudentProfile


class AttendanceStore(Protocol):
    # Attendance events: equality filters only, date windows are applied by callers
    async def events_for_student(self, student_id: str) -> Sequence[AttendanceEventBase]:
        raise NotImplementedError

    async def events_for_subject(self, subject: str) -> Sequence[AttendanceEventBase]:
        raise NotImplementedError

    async def events_for_subject_on(self, subject: str, day: str) -> Sequence[AttendanceEventBase]:
        raise NotImplementedError

    async def events_for_student_on(self, student_id: str, day: str) -> Sequence[AttendanceEventBase]:
        raise NotImplementedError

    async def has_session_event(self, student_id: str, session_id: str) -> bool:
        raise NotImplementedError

    async def manual_session_ids(self, *, faculty_id: str, subject: str, batch: str, day: str) -> list[str]:
        raise NotImplementedError

    async def insert_events(self, events: Sequence[AttendanceEventBase]) -> int:
        """Write all events in one batch; nothing is written if any write fails."""
        raise NotImplementedError

    # Roster
    async def find_students(self, school: str, batch: str) -> list[StudentProfile]:
        raise NotImplementedError

    async def get_student(self, student_id: str) -> Optional[StudentProfile]:
        raise NotImplementedError

    # QR sessions
    async def save_qr_session(self, session: QrSessionBase) -> QrSessionBase:
        raise NotImplementedError

    async def get_qr_session(self, session_id: str) -> Optional[QrSessionBase]:
        raise NotImplementedError

    # Temporary photos
    async def add_temp_photo(self, photo: TempPhotoBase) -> str:
        raise NotImplementedError

    async def has_temp_photo(self, *, student_id: str, day: str, subject: str, qr_session_id: Optional[str]) -> bool:
        raise NotImplementedError

    async def pending_photos(self, qr_session_id: str) -> Sequence[TempPhotoBase]:
        """Pending photos for a session; each result carries an ``id``."""
        raise NotImplementedError

    async def commit_verification(
        self,
        events: Sequence[AttendanceEventBase],
        decisions: dict[str, str],
        *,
        processed_by: str,
        processed_at: datetime,
    ) -> None:
        """Insert events and mark the decided photos processed atomically."""
        raise NotImplementedError

    async def processed_photos_before(self, cutoff: datetime, limit: int) -> Sequence[TempPhotoBase]:
        raise NotImplementedError

    async def delete_temp_photos(self, photo_ids: Sequence[str]) -> int:
        raise NotImplementedError


class LeaveStore(Protocol):
    async def add_leave_request(self, request: LeaveRequestBase) -> str:
        raise NotImplementedError

    async def get_leave_request(self, request_id: str) -> Optional[LeaveRequestBase]:
        raise NotImplementedError

    async def pending_leave_requests(self, subjects: Sequence[str]) -> Sequence[LeaveRequestBase]:
        raise NotImplementedError

    async def update_leave_status(
        self,
        request_id: str,
        *,
        status: LeaveStatus,
        processed_by: str,
        processed_at: datetime,
        comment: Optional[str],
    ) -> bool:
        """Only transitions a still-pending request; returns False otherwise."""
        raise NotImplementedError

    async def add_notification(self, notification: NotificationBase) -> str:
        raise NotImplementedError

    async def notifications_for(self, user_id: str, limit: int) -> Sequence[NotificationBase]:
        raise NotImplementedError

    async def mark_notification_read(self, user_id: str, notification_id: str) -> bool:
        raise NotImplementedError

    async def fcm_tokens_for(self, user_id: str) -> list[str]:
        raise NotImplementedError
