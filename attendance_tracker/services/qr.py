"""QR attendance sessions: issue, refresh, scan and photo submission."""
from __future__ import annotations

import logging
import secrets
import string
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from attendance_tracker.config import settings
from attendance_tracker.exceptions import Conflict, Forbidden, NotFound, QRSessionExpired, ValidationFailed
from attendance_tracker.models.attendance import AttendanceEventBase, AttendanceMethod, AttendanceStatus
from attendance_tracker.models.qr_session import QrSessionBase, QrSessionCreate
from attendance_tracker.models.temp_photo import TempPhotoBase
from attendance_tracker.models.user import StudentProfile
from attendance_tracker.services.dates import class_time, local_date_string
from attendance_tracker.services.store import AttendanceStore

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase

PhotoUploader = Callable[[QrSessionBase], Awaitable[tuple[str, str]]]


def generate_session_id(subject: str, batch: str, now: datetime | None = None, prefix: str = "") -> str:
    """``{prefix}{subject}_{batch}_{epoch ms}_{6 random base36 chars}``."""
    now = now or datetime.utcnow()
    epoch_ms = int((now - datetime(1970, 1, 1)).total_seconds() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"{prefix}{subject}_{batch}_{epoch_ms}_{suffix}"


def _required(value: Optional[str], field: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationFailed(f"{field} is required")
    return value


async def issue_qr_session(
    store: AttendanceStore,
    request: QrSessionCreate,
    *,
    faculty_id: str,
    faculty_name: Optional[str] = None,
    now: datetime | None = None,
) -> QrSessionBase:
    now = now or datetime.utcnow()
    school = _required(request.school, "School")
    batch = _required(request.batch, "Batch")
    subject = _required(request.subject, "Subject")
    session = QrSessionBase(
        session_id=generate_session_id(subject, batch, now),
        school=school,
        batch=batch,
        subject=subject,
        periods=max(1, request.periods or 1),
        faculty_id=faculty_id,
        faculty_name=faculty_name,
        class_time=class_time(now),
        date=local_date_string(now),
        issued_at=now,
        expires_at=now + timedelta(seconds=settings.qr_validity_seconds),
        refresh_nonce=secrets.token_hex(8),
    )
    saved = await store.save_qr_session(session)
    logger.info(
        f"QR session {saved.session_id} issued by {faculty_id} for {subject} "
        f"({school}/{batch}, {saved.periods} periods)"
    )
    return saved


def qr_payload(session: QrSessionBase) -> dict:
    """Data encoded into the QR image; rendering is left to the client."""
    timestamp = int((session.issued_at - datetime(1970, 1, 1)).total_seconds() * 1000)
    expiry = int((session.expires_at - datetime(1970, 1, 1)).total_seconds() * 1000)
    return {
        "session_id": session.session_id,
        "school": session.school,
        "batch": session.batch,
        "subject": session.subject,
        "periods": session.periods,
        "faculty_id": session.faculty_id,
        "faculty_name": session.faculty_name,
        "timestamp": timestamp,
        "expiry": expiry,
        "valid_for": settings.qr_validity_seconds,
        "class_time": session.class_time,
        "generated_at": session.issued_at.isoformat(),
        "nonce": session.refresh_nonce,
        "refresh_count": session.refresh_count,
    }


def _check_active(session: QrSessionBase, now: datetime) -> None:
    if now > session.expires_at:
        raise QRSessionExpired(session.session_id)


async def refresh_qr_session(
    store: AttendanceStore,
    session_id: str,
    *,
    faculty_id: str,
    now: datetime | None = None,
) -> QrSessionBase:
    """Extend an active session with a new nonce so screenshots go stale."""
    now = now or datetime.utcnow()
    session = await store.get_qr_session(session_id)
    if not session or session.faculty_id != faculty_id:
        raise NotFound(f"QR session {session_id} not found")
    _check_active(session, now)
    refreshed = session.model_copy(
        update={
            "expires_at": now + timedelta(seconds=settings.qr_validity_seconds),
            "refresh_count": session.refresh_count + 1,
            "refresh_nonce": secrets.token_hex(8),
        }
    )
    saved = await store.save_qr_session(refreshed)
    logger.debug(f"QR session {session_id} refreshed ({saved.refresh_count})")
    return saved


async def validate_scan(
    store: AttendanceStore,
    session_id: str,
    student: StudentProfile,
    now: datetime | None = None,
) -> QrSessionBase:
    """Check that a student may mark attendance against a scanned session."""
    now = now or datetime.utcnow()
    session = await store.get_qr_session(session_id)
    if not session:
        raise NotFound("Invalid QR code")
    _check_active(session, now)

    school = (student.school or "").strip()
    batch = (student.batch or "").strip()
    if not school or not batch:
        raise ValidationFailed("Complete your profile with school and batch before marking attendance")
    if school != session.school.strip():
        raise Forbidden(f"This QR code is for {session.school}, not {school}")
    if batch != session.batch.strip():
        raise Forbidden(f"This QR code is for batch {session.batch}, not {batch}")

    if await store.has_session_event(student.id, session.session_id):
        raise Conflict(f"Attendance already marked for {session.subject} in this session")
    # A submitted photo becomes an event when reviewed, so it already claims the session
    photo_pending = await store.has_temp_photo(
        student_id=student.id,
        day=session.date,
        subject=session.subject,
        qr_session_id=session.session_id,
    )
    if photo_pending:
        raise Conflict(f"Photo already submitted for {session.subject} in this session")
    return session


def _qr_event(session: QrSessionBase, student: StudentProfile, now: datetime) -> AttendanceEventBase:
    return AttendanceEventBase(
        user_id=student.id,
        student_name=student.full_name,
        reg_number=student.reg_number,
        school=session.school,
        batch=session.batch,
        subject=session.subject,
        date=session.date,
        periods=session.periods,
        status=AttendanceStatus.PRESENT,
        session_id=session.session_id,
        qr_session_id=session.session_id,
        marked_by=student.id,
        faculty_id=session.faculty_id,
        faculty_name=session.faculty_name,
        method=AttendanceMethod.QR,
        class_time=session.class_time,
        marked_at=now,
    )


async def mark_qr_attendance(
    store: AttendanceStore,
    session_id: str,
    student: StudentProfile,
    now: datetime | None = None,
) -> AttendanceEventBase:
    """Record the student present for a scanned session without photo review."""
    now = now or datetime.utcnow()
    session = await validate_scan(store, session_id, student, now)
    event = _qr_event(session, student, now)
    await store.insert_events([event])
    logger.info(f"QR attendance marked for {student.id} in session {session.session_id}")
    return event


async def submit_photo(
    store: AttendanceStore,
    session_id: str,
    student: StudentProfile,
    upload: PhotoUploader,
    now: datetime | None = None,
) -> str:
    """Upload a verification photo and queue it for faculty review; returns the photo id."""
    now = now or datetime.utcnow()
    session = await validate_scan(store, session_id, student, now)
    photo_url, photo_key = await upload(session)
    photo = TempPhotoBase(
        student_id=student.id,
        student_email=student.email,
        student_name=student.full_name,
        reg_number=student.reg_number,
        school=session.school,
        batch=session.batch,
        subject=session.subject,
        periods=session.periods,
        date=session.date,
        qr_session_id=session.session_id,
        faculty_id=session.faculty_id,
        faculty_name=session.faculty_name,
        class_time=session.class_time,
        photo_url=photo_url,
        photo_key=photo_key,
        submitted_at=now,
    )
    photo_id = await store.add_temp_photo(photo)
    logger.info(f"Verification photo {photo_id} submitted by {student.id} for session {session.session_id}")
    return photo_id
