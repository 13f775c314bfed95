"""Faculty review of submitted photos and its conversion into attendance events."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Mapping, Optional, Sequence

from attendance_tracker.exceptions import Conflict, NotFound, StoreWriteFailed, ValidationFailed
from attendance_tracker.models.attendance import AttendanceEventBase, AttendanceMethod, AttendanceStatus
from attendance_tracker.models.temp_photo import TempPhotoBase
from attendance_tracker.services.store import AttendanceStore

logger = logging.getLogger(__name__)


class Decision(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    PENDING = "pending"


@dataclass(frozen=True)
class VerificationSummary:
    roster_total: int
    submitted: int
    present: int
    absent_submitters: int
    pending: int
    non_submitters: int

    @property
    def total_absent(self) -> int:
        return self.absent_submitters + self.non_submitters


def _photo_id(photo: TempPhotoBase) -> str:
    return str(getattr(photo, "id"))


class DecisionStore:
    """In-memory decisions for one review pass over a session's photos.

    Every submitted photo starts as present; faculty toggle individuals to
    absent. Students without a photo never enter the map and are absent.
    """

    def __init__(self, photos: Iterable[TempPhotoBase], roster_total: int = 0) -> None:
        self._photos: dict[str, TempPhotoBase] = {_photo_id(p): p for p in photos}
        self._decisions: dict[str, Decision] = {pid: Decision.PRESENT for pid in self._photos}
        self.roster_total = roster_total
        self.saved = False

    @property
    def photos(self) -> list[TempPhotoBase]:
        return list(self._photos.values())

    @property
    def decisions(self) -> dict[str, Decision]:
        return dict(self._decisions)

    def decision(self, photo_id: str) -> Decision:
        self._require(photo_id)
        return self._decisions[photo_id]

    def _require(self, photo_id: str) -> None:
        if photo_id not in self._photos:
            raise NotFound(f"Photo {photo_id} is not part of this review")

    def _require_open(self) -> None:
        if self.saved:
            raise Conflict("Decisions were already saved for this review")

    def toggle(self, photo_id: str) -> Decision:
        self._require_open()
        self._require(photo_id)
        current = self._decisions[photo_id]
        new = Decision.ABSENT if current == Decision.PRESENT else Decision.PRESENT
        self._decisions[photo_id] = new
        logger.debug(f"Photo {photo_id} status changed to: {new.value}")
        return new

    def set(self, photo_id: str, decision: Decision | str) -> None:
        self._require_open()
        self._require(photo_id)
        try:
            self._decisions[photo_id] = Decision(decision)
        except ValueError:
            raise ValidationFailed(f"Unknown decision {decision!r} for photo {photo_id}")

    def apply(self, decisions: Mapping[str, Decision | str]) -> None:
        """Apply several decisions; any invalid entry rejects the whole set."""
        self._require_open()
        parsed: dict[str, Decision] = {}
        for photo_id, decision in decisions.items():
            self._require(photo_id)
            try:
                parsed[photo_id] = Decision(decision)
            except ValueError:
                raise ValidationFailed(f"Unknown decision {decision!r} for photo {photo_id}")
        self._decisions.update(parsed)

    def summary(self) -> VerificationSummary:
        values = list(self._decisions.values())
        submitted = len(values)
        return VerificationSummary(
            roster_total=self.roster_total,
            submitted=submitted,
            present=values.count(Decision.PRESENT),
            absent_submitters=values.count(Decision.ABSENT),
            pending=values.count(Decision.PENDING),
            non_submitters=max(0, self.roster_total - submitted),
        )

    def build_events(self, verified_by: str, now: Optional[datetime] = None) -> list[AttendanceEventBase]:
        """One present event per present decision; absence is left implicit."""
        now = now or datetime.utcnow()
        events: list[AttendanceEventBase] = []
        for photo_id, photo in self._photos.items():
            if self._decisions[photo_id] != Decision.PRESENT:
                continue
            events.append(
                AttendanceEventBase(
                    user_id=photo.student_id,
                    student_name=photo.student_name,
                    reg_number=photo.reg_number,
                    school=photo.school,
                    batch=photo.batch,
                    subject=photo.subject,
                    date=photo.date,
                    periods=photo.periods,
                    status=AttendanceStatus.PRESENT,
                    session_id=photo.qr_session_id,
                    qr_session_id=photo.qr_session_id,
                    marked_by=photo.faculty_id,
                    faculty_id=photo.faculty_id,
                    faculty_name=photo.faculty_name,
                    method=AttendanceMethod.QR_PHOTO,
                    # The photo itself is never kept with the permanent record
                    has_photo=False,
                    class_time=photo.class_time,
                    marked_at=now,
                    verified_by=verified_by,
                )
            )
        return events

    async def _unrecorded(self, store: AttendanceStore, events: list[AttendanceEventBase]) -> list[AttendanceEventBase]:
        """Drop events for students who already have one for their session."""
        recorded = await asyncio.gather(
            *(store.has_session_event(e.user_id, e.session_id) for e in events)
        )
        kept: list[AttendanceEventBase] = []
        for event, exists in zip(events, recorded):
            if exists:
                logger.warning(
                    f"Student {event.user_id} already has attendance for session {event.session_id}; "
                    "photo decision recorded without a new event"
                )
                continue
            kept.append(event)
        return kept

    async def save(self, store: AttendanceStore, verified_by: str) -> list[AttendanceEventBase]:
        """Commit the review as one batch; on failure nothing changes and save can be retried."""
        self._require_open()
        now = datetime.utcnow()
        events = await self._unrecorded(store, self.build_events(verified_by, now))
        # Pending decisions are stored as absent
        processed = {
            pid: (Decision.ABSENT if d == Decision.PENDING else d).value
            for pid, d in self._decisions.items()
        }
        try:
            await store.commit_verification(
                events,
                processed,
                processed_by=verified_by,
                processed_at=now,
            )
        except StoreWriteFailed:
            logger.error(f"Saving photo verification failed; {len(events)} events were not committed")
            raise
        self.saved = True
        logger.info(
            f"Photo verification saved by {verified_by}: {len(events)} present, "
            f"{len(processed) - len(events)} absent among submitters"
        )
        return events


async def load_review(
    store: AttendanceStore,
    qr_session_id: str,
    faculty_id: Optional[str],
) -> DecisionStore:
    """Pending photos for a QR session with the roster size.

    ``faculty_id`` restricts the review to sessions that faculty member issued;
    admins pass None.
    """
    session = await store.get_qr_session(qr_session_id)
    if not session:
        raise NotFound(f"QR session {qr_session_id} not found")
    if faculty_id is not None and session.faculty_id != faculty_id:
        raise NotFound(f"QR session {qr_session_id} not found")
    photos: Sequence[TempPhotoBase] = await store.pending_photos(qr_session_id)
    roster = await store.find_students(session.school, session.batch)
    return DecisionStore(photos, roster_total=len(roster))
