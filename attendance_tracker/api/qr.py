"""QR attendance: faculty issue and refresh codes, students scan them."""
from fastapi import APIRouter, File, HTTPException, UploadFile, Form

from attendance_tracker.api.deps import CurrentStudent, FacultyOrAdmin, Store, is_admin
from attendance_tracker.models.qr_session import QrScanRequest, QrSessionBase, QrSessionCreate
from attendance_tracker.services.qr import (
    issue_qr_session,
    mark_qr_attendance,
    qr_payload,
    refresh_qr_session,
    submit_photo,
)
from attendance_tracker.services.s3 import upload_temp_photo_to_s3

router = APIRouter()

ALLOWED_PHOTO_TYPES = {"image/jpeg", "image/png", "image/webp"}


@router.post("/sessions")
async def create_qr_session(data: QrSessionCreate, user: FacultyOrAdmin, store: Store):
    if not is_admin(user) and data.subject.strip() not in user.subjects:
        raise HTTPException(status_code=403, detail="You are not assigned to this subject")
    session = await issue_qr_session(
        store,
        data,
        faculty_id=str(user.id),
        faculty_name=user.full_name,
    )
    return qr_payload(session)


@router.post("/sessions/{session_id}/refresh")
async def refresh_session(session_id: str, user: FacultyOrAdmin, store: Store):
    session = await refresh_qr_session(store, session_id, faculty_id=str(user.id))
    return qr_payload(session)


@router.post("/scan")
async def scan_qr(data: QrScanRequest, student: CurrentStudent, store: Store):
    """Mark the student present directly from a scanned code."""
    event = await mark_qr_attendance(store, data.session_id, student)
    return {"status": "ok", "record": event}


@router.post("/photo")
async def submit_verification_photo(
    student: CurrentStudent,
    store: Store,
    session_id: str = Form(...),
    photo: UploadFile = File(...),
):
    """Submit a photo after scanning; attendance is recorded once faculty verify it."""
    if photo.content_type and photo.content_type not in ALLOWED_PHOTO_TYPES:
        raise HTTPException(status_code=400, detail="Photo must be a JPEG, PNG or WebP image")

    async def upload(session: QrSessionBase) -> tuple[str, str]:
        return await upload_temp_photo_to_s3(photo, student_id=student.id, qr_session_id=session.session_id)

    photo_id = await submit_photo(store, session_id, student, upload)
    return {"status": "pending_verification", "photo_id": photo_id}
