"""Beanie/Motor implementations of the attendance and leave stores."""
from __future__ import annotations

import functools
import logging
from datetime import datetime
from typing import Optional, Sequence

from beanie import PydanticObjectId
from beanie.operators import In
from bson.errors import InvalidId
from pymongo.errors import BulkWriteError, DuplicateKeyError, PyMongoError

from attendance_tracker.db import get_client
from attendance_tracker.exceptions import Conflict, StoreUnavailable, StoreWriteFailed
from attendance_tracker.models.attendance import AttendanceEvent, AttendanceEventBase, AttendanceMethod
from attendance_tracker.models.leave_request import LeaveRequest, LeaveRequestBase, LeaveStatus
from attendance_tracker.models.notification import Notification, NotificationBase
from attendance_tracker.models.qr_session import QrSession, QrSessionBase
from attendance_tracker.models.temp_photo import TempPhoto, TempPhotoBase, TempPhotoStatus
from attendance_tracker.models.user import StudentProfile, User, UserRole
from attendance_tracker.services.membership import profile_from_user

logger = logging.getLogger(__name__)


def _reads(func):
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except PyMongoError as e:
            logger.error(f"{func.__name__} failed: {e}")
            raise StoreUnavailable(f"Could not read from the database: {e}") from e

    return wrapper


_DUPLICATE_KEY = 11000


def _is_duplicate(error: PyMongoError) -> bool:
    if isinstance(error, DuplicateKeyError):
        return True
    if isinstance(error, BulkWriteError):
        return any(e.get("code") == _DUPLICATE_KEY for e in error.details.get("writeErrors", []))
    return False


def _writes(func):
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except PyMongoError as e:
            if _is_duplicate(e):
                logger.warning(f"{func.__name__} rejected a duplicate attendance event: {e}")
                raise Conflict("Attendance already marked for this session") from e
            logger.error(f"{func.__name__} failed: {e}")
            raise StoreWriteFailed(f"Could not write to the database: {e}") from e

    return wrapper


def _object_id(value: str) -> Optional[PydanticObjectId]:
    try:
        return PydanticObjectId(value)
    except (InvalidId, TypeError):
        return None


def _fields(model: type, value) -> dict:
    # Drop Document bookkeeping (id, revision) when copying into a new document
    return value.model_dump(include=set(model.model_fields))


class MongoAttendanceStore:
    @_reads
    async def events_for_student(self, student_id: str) -> list[AttendanceEvent]:
        return await AttendanceEvent.find(AttendanceEvent.user_id == student_id).to_list()

    @_reads
    async def events_for_subject(self, subject: str) -> list[AttendanceEvent]:
        return await AttendanceEvent.find(AttendanceEvent.subject == subject).to_list()

    @_reads
    async def events_for_subject_on(self, subject: str, day: str) -> list[AttendanceEvent]:
        return await AttendanceEvent.find(
            AttendanceEvent.subject == subject,
            AttendanceEvent.date == day,
        ).to_list()

    @_reads
    async def events_for_student_on(self, student_id: str, day: str) -> list[AttendanceEvent]:
        return await AttendanceEvent.find(
            AttendanceEvent.user_id == student_id,
            AttendanceEvent.date == day,
        ).sort("marked_at").to_list()

    @_reads
    async def has_session_event(self, student_id: str, session_id: str) -> bool:
        existing = await AttendanceEvent.find_one(
            {
                "user_id": student_id,
                "$or": [{"session_id": session_id}, {"qr_session_id": session_id}],
            }
        )
        return existing is not None

    @_reads
    async def manual_session_ids(self, *, faculty_id: str, subject: str, batch: str, day: str) -> list[str]:
        ids = await AttendanceEvent.distinct(
            "session_id",
            {
                "faculty_id": faculty_id,
                "subject": subject,
                "batch": batch,
                "date": day,
                "method": AttendanceMethod.MANUAL.value,
            },
        )
        return sorted(i for i in ids if i)

    @_writes
    async def insert_events(self, events: Sequence[AttendanceEventBase]) -> int:
        if not events:
            return 0
        docs = [AttendanceEvent(**_fields(AttendanceEventBase, e)) for e in events]
        async with await get_client().start_session() as session:
            async with session.start_transaction():
                await AttendanceEvent.insert_many(docs, session=session)
        return len(docs)

    @_reads
    async def find_students(self, school: str, batch: str) -> list[StudentProfile]:
        users = await User.find(
            {"role": UserRole.STUDENT.value, "school": school, "batch": batch, "is_active": True}
        ).sort("full_name").to_list()
        return [profile_from_user(u) for u in users]

    @_reads
    async def get_student(self, student_id: str) -> Optional[StudentProfile]:
        oid = _object_id(student_id)
        if oid is None:
            return None
        user = await User.get(oid)
        if not user or user.role != UserRole.STUDENT:
            return None
        return profile_from_user(user)

    @_writes
    async def save_qr_session(self, session: QrSessionBase) -> QrSession:
        data = _fields(QrSessionBase, session)
        existing = await QrSession.find_one(QrSession.session_id == session.session_id)
        if existing:
            await existing.set(data)
            return existing
        doc = QrSession(**data)
        await doc.insert()
        return doc

    @_reads
    async def get_qr_session(self, session_id: str) -> Optional[QrSession]:
        return await QrSession.find_one(QrSession.session_id == session_id)

    @_writes
    async def add_temp_photo(self, photo: TempPhotoBase) -> str:
        doc = TempPhoto(**_fields(TempPhotoBase, photo))
        await doc.insert()
        return str(doc.id)

    @_reads
    async def has_temp_photo(self, *, student_id: str, day: str, subject: str, qr_session_id: Optional[str]) -> bool:
        query = {"student_id": student_id, "date": day, "subject": subject}
        if qr_session_id:
            query["qr_session_id"] = qr_session_id
        return await TempPhoto.find_one(query) is not None

    @_reads
    async def pending_photos(self, qr_session_id: str) -> list[TempPhoto]:
        return await TempPhoto.find(
            TempPhoto.qr_session_id == qr_session_id,
            TempPhoto.status == TempPhotoStatus.PENDING_VERIFICATION,
        ).sort("submitted_at").to_list()

    @_writes
    async def commit_verification(
        self,
        events: Sequence[AttendanceEventBase],
        decisions: dict[str, str],
        *,
        processed_by: str,
        processed_at: datetime,
    ) -> None:
        docs = [AttendanceEvent(**_fields(AttendanceEventBase, e)) for e in events]
        by_decision: dict[str, list[PydanticObjectId]] = {}
        for photo_id, decision in decisions.items():
            oid = _object_id(photo_id)
            if oid is not None:
                by_decision.setdefault(decision, []).append(oid)

        collection = TempPhoto.get_motor_collection()
        async with await get_client().start_session() as session:
            async with session.start_transaction():
                # Only still-pending photos move; anything less means another review saved first
                updated = 0
                for decision, ids in by_decision.items():
                    result = await collection.update_many(
                        {"_id": {"$in": ids}, "status": TempPhotoStatus.PENDING_VERIFICATION.value},
                        {
                            "$set": {
                                "status": TempPhotoStatus.PROCESSED.value,
                                "faculty_decision": decision,
                                "processed_at": processed_at,
                                "processed_by": processed_by,
                            }
                        },
                        session=session,
                    )
                    updated += result.modified_count
                if updated != len(decisions):
                    raise Conflict("These photos were already reviewed; reload the session")
                if docs:
                    await AttendanceEvent.insert_many(docs, session=session)

    @_reads
    async def processed_photos_before(self, cutoff: datetime, limit: int) -> list[TempPhoto]:
        return await TempPhoto.find(
            TempPhoto.status == TempPhotoStatus.PROCESSED,
            TempPhoto.processed_at < cutoff,
        ).limit(limit).to_list()

    @_writes
    async def delete_temp_photos(self, photo_ids: Sequence[str]) -> int:
        oids = [oid for oid in (_object_id(i) for i in photo_ids) if oid is not None]
        if not oids:
            return 0
        result = await TempPhoto.find(In(TempPhoto.id, oids)).delete()
        return result.deleted_count if result else 0


class MongoLeaveStore:
    @_writes
    async def add_leave_request(self, request: LeaveRequestBase) -> str:
        doc = LeaveRequest(**_fields(LeaveRequestBase, request))
        await doc.insert()
        return str(doc.id)

    @_reads
    async def get_leave_request(self, request_id: str) -> Optional[LeaveRequest]:
        oid = _object_id(request_id)
        return await LeaveRequest.get(oid) if oid else None

    @_reads
    async def pending_leave_requests(self, subjects: Sequence[str]) -> list[LeaveRequest]:
        return await LeaveRequest.find(
            LeaveRequest.status == LeaveStatus.PENDING,
            In(LeaveRequest.subject, list(subjects)),
        ).sort("-created_at").to_list()

    @_writes
    async def update_leave_status(
        self,
        request_id: str,
        *,
        status: LeaveStatus,
        processed_by: str,
        processed_at: datetime,
        comment: Optional[str],
    ) -> bool:
        oid = _object_id(request_id)
        if oid is None:
            return False
        # Conditional on status so two concurrent decisions cannot both apply
        result = await LeaveRequest.get_motor_collection().update_one(
            {"_id": oid, "status": LeaveStatus.PENDING.value},
            {
                "$set": {
                    "status": status.value,
                    "processed_by": processed_by,
                    "processed_at": processed_at,
                    "faculty_comment": comment,
                }
            },
        )
        return result.modified_count == 1

    @_writes
    async def add_notification(self, notification: NotificationBase) -> str:
        doc = Notification(**_fields(NotificationBase, notification))
        await doc.insert()
        return str(doc.id)

    @_reads
    async def notifications_for(self, user_id: str, limit: int) -> list[Notification]:
        return await Notification.find(Notification.user_id == user_id).sort("-created_at").limit(limit).to_list()

    @_writes
    async def mark_notification_read(self, user_id: str, notification_id: str) -> bool:
        oid = _object_id(notification_id)
        if oid is None:
            return False
        result = await Notification.get_motor_collection().update_one(
            {"_id": oid, "user_id": user_id},
            {"$set": {"read": True}},
        )
        return result.matched_count == 1

    @_reads
    async def fcm_tokens_for(self, user_id: str) -> list[str]:
        oid = _object_id(user_id)
        user = await User.get(oid) if oid else None
        return list(user.fcm_tokens) if user else []
