"""Attendance percentages with fair evaluation.

A subject percentage divides the student's present periods by the periods
held for the whole class in the academic window, not by the periods the
student happened to be marked for. Overall figures sum present and held
periods across subjects before dividing.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Sequence

from attendance_tracker.config import settings
from attendance_tracker.exceptions import StoreUnavailable
from attendance_tracker.models.attendance import AttendanceEventBase, AttendanceStatus, DayStatus
from attendance_tracker.models.user import StudentProfile
from attendance_tracker.services.dates import AcademicWindow, academic_window
from attendance_tracker.services.sessions import (
    SessionSummary,
    is_aggregatable,
    reconcile_sessions,
    session_key,
    usable_periods,
)
from attendance_tracker.services.store import AttendanceStore

logger = logging.getLogger(__name__)

MODE_FAIR = "fair"
MODE_FALLBACK = "fallback"
# Row-level only: the student's own events could not be read
MODE_UNAVAILABLE = "unavailable"


def percentage(present: int, total: int) -> int:
    """``round(100 * present / total)`` with halves rounded up; 0 when nothing was held."""
    if total <= 0:
        return 0
    return (200 * present + total) // (2 * total)


def event_periods(event: AttendanceEventBase) -> int:
    return usable_periods(event) or 1


@dataclass(frozen=True)
class SubjectAttendance:
    subject: str
    present_periods: int
    total_periods: int
    percentage: int


@dataclass(frozen=True)
class StudentAttendanceSummary:
    student_id: str
    window: AcademicWindow
    subjects: tuple[SubjectAttendance, ...]
    present_periods: int
    total_periods: int
    percentage: int
    mode: str = MODE_FAIR
    low_attendance_subjects: tuple[str, ...] = ()
    skipped_events: int = 0

    @property
    def degraded(self) -> bool:
        return self.mode != MODE_FAIR

    def subject(self, name: str) -> Optional[SubjectAttendance]:
        return next((s for s in self.subjects if s.subject == name), None)


def _in_scope(event: AttendanceEventBase, window: AcademicWindow) -> bool:
    return is_aggregatable(event) and window.contains(event.date)


def present_periods(
    events: Iterable[AttendanceEventBase],
    student_id: str,
    subject: str,
    window: AcademicWindow,
    merge_unlabeled: bool | None = None,
) -> int:
    """Periods the student was present for; events outside any session are ignored."""
    total = 0
    for event in events:
        if event.user_id != student_id or event.subject != subject:
            continue
        if event.status != AttendanceStatus.PRESENT or not _in_scope(event, window):
            continue
        if session_key(event, merge_unlabeled) is None:
            continue
        total += event_periods(event)
    return total


def student_subjects(events: Iterable[AttendanceEventBase], window: AcademicWindow) -> list[str]:
    subjects: list[str] = []
    for event in events:
        if _in_scope(event, window) and event.subject not in subjects:
            subjects.append(event.subject)
    return sorted(subjects)


def _low_subjects(subjects: Sequence[SubjectAttendance], threshold: int) -> tuple[str, ...]:
    return tuple(s.subject for s in subjects if s.percentage < threshold)


def summarize_student(
    student_id: str,
    student_events: Sequence[AttendanceEventBase],
    subject_events: Mapping[str, Sequence[AttendanceEventBase]],
    window: AcademicWindow,
    *,
    threshold: int | None = None,
    merge_unlabeled: bool | None = None,
    include_subjects: Iterable[str] = (),
) -> StudentAttendanceSummary:
    """Fair-evaluation summary for one student.

    ``subject_events`` holds every student's events per subject; it supplies
    the class-wide denominator. Subjects are those the student has an event
    for in the window, plus ``include_subjects``.
    """
    if threshold is None:
        threshold = settings.low_attendance_threshold
    skipped = sum(1 for e in student_events if not is_aggregatable(e))
    if skipped:
        logger.info(f"Student {student_id}: {skipped} events without date or subject were excluded")

    results: list[SubjectAttendance] = []
    for subject in sorted(set(student_subjects(student_events, window)) | set(include_subjects)):
        held = reconcile_sessions(
            subject_events.get(subject, ()),
            subject=subject,
            window=window,
            merge_unlabeled=merge_unlabeled,
        ).total_classes_held
        present = present_periods(student_events, student_id, subject, window, merge_unlabeled)
        results.append(
            SubjectAttendance(
                subject=subject,
                present_periods=present,
                total_periods=held,
                percentage=percentage(present, held),
            )
        )

    overall_present = sum(r.present_periods for r in results)
    overall_total = sum(r.total_periods for r in results)
    return StudentAttendanceSummary(
        student_id=student_id,
        window=window,
        subjects=tuple(results),
        present_periods=overall_present,
        total_periods=overall_total,
        percentage=percentage(overall_present, overall_total),
        mode=MODE_FAIR,
        low_attendance_subjects=_low_subjects(results, threshold),
        skipped_events=skipped,
    )


def summarize_student_fallback(
    student_id: str,
    student_events: Sequence[AttendanceEventBase],
    window: AcademicWindow,
    *,
    threshold: int | None = None,
) -> StudentAttendanceSummary:
    """Present / attempted periods from the student's own events only."""
    if threshold is None:
        threshold = settings.low_attendance_threshold
    stats: dict[str, list[int]] = {}
    skipped = 0
    for event in student_events:
        if not is_aggregatable(event):
            skipped += 1
            continue
        if event.user_id != student_id or not window.contains(event.date):
            continue
        periods = event_periods(event)
        counts = stats.setdefault(event.subject, [0, 0])
        counts[1] += periods
        if event.status == AttendanceStatus.PRESENT:
            counts[0] += periods

    results = [
        SubjectAttendance(
            subject=subject,
            present_periods=present,
            total_periods=total,
            percentage=percentage(present, total),
        )
        for subject, (present, total) in sorted(stats.items())
    ]
    overall_present = sum(r.present_periods for r in results)
    overall_total = sum(r.total_periods for r in results)
    return StudentAttendanceSummary(
        student_id=student_id,
        window=window,
        subjects=tuple(results),
        present_periods=overall_present,
        total_periods=overall_total,
        percentage=percentage(overall_present, overall_total),
        mode=MODE_FALLBACK,
        low_attendance_subjects=_low_subjects(results, threshold),
        skipped_events=skipped,
    )


async def load_subject_events(
    store: AttendanceStore,
    subjects: Iterable[str],
    cache: dict[str, Sequence[AttendanceEventBase]] | None = None,
) -> dict[str, Sequence[AttendanceEventBase]]:
    """Fetch class-wide events for each subject not already in ``cache``."""
    cache = {} if cache is None else cache
    missing = [s for s in dict.fromkeys(subjects) if s not in cache]
    if missing:
        fetched = await asyncio.gather(*(store.events_for_subject(s) for s in missing))
        cache.update(zip(missing, fetched))
    return cache


async def compute_student_summary(
    store: AttendanceStore,
    student_id: str,
    *,
    as_of: str | None = None,
    student_events: Sequence[AttendanceEventBase] | None = None,
    subject_cache: dict[str, Sequence[AttendanceEventBase]] | None = None,
    include_subjects: Sequence[str] = (),
) -> StudentAttendanceSummary:
    """Fair summary, degrading to the student's own ratio if class-wide reads fail."""
    window = academic_window(as_of)
    if student_events is None:
        student_events = await store.events_for_student(student_id)
    subjects = student_subjects(student_events, window) + list(include_subjects)
    try:
        subject_events = await load_subject_events(store, subjects, subject_cache)
    except StoreUnavailable as e:
        logger.error(f"Fair calculation failed for student {student_id}, using fallback: {e}")
        return summarize_student_fallback(student_id, student_events, window)
    return summarize_student(
        student_id,
        student_events,
        subject_events,
        window,
        include_subjects=include_subjects,
    )


@dataclass(frozen=True)
class StudentDayRow:
    student_id: str
    name: str
    reg_number: Optional[str]
    # None values mean "N/A": no session was held that day
    day_status: Optional[DayStatus]
    total_classes_today: Optional[int]
    classes_attended_today: Optional[int]
    subject_percentage: Optional[int] = None
    overall_percentage: Optional[int] = None
    subject_present_periods: Optional[int] = None
    subject_total_periods: Optional[int] = None
    overall_present_periods: Optional[int] = None
    overall_total_periods: Optional[int] = None
    inconsistent: bool = False
    mode: Optional[str] = None
    degraded: bool = False


@dataclass(frozen=True)
class BatchDayReport:
    school: str
    batch: str
    subject: str
    date: str
    session_held: bool
    total_classes_today: int
    total_students: int
    rows: tuple[StudentDayRow, ...]
    sessions: tuple[SessionSummary, ...] = ()
    total_present: Optional[int] = None
    total_absent: Optional[int] = None
    batch_percentage: Optional[int] = None
    inconsistencies: tuple[str, ...] = field(default=())


def _in_batch(event: AttendanceEventBase, school: str, batch: str) -> bool:
    # Events without school/batch (legacy) are attributed by subject/date alone
    return event.school in (None, school) and event.batch in (None, batch)


def build_batch_day_report(
    *,
    school: str,
    batch: str,
    subject: str,
    day: str,
    students: Sequence[StudentProfile],
    day_events: Sequence[AttendanceEventBase],
    summaries: Mapping[str, StudentAttendanceSummary],
    merge_unlabeled: bool | None = None,
) -> BatchDayReport:
    scoped = [
        e for e in day_events
        if e.subject == subject and e.date == day and _in_batch(e, school, batch)
    ]
    reconciliation = reconcile_sessions(scoped, subject=subject, merge_unlabeled=merge_unlabeled)
    total_today = reconciliation.total_classes_held
    ordered = sorted(students, key=lambda s: (s.full_name or "").lower())

    if total_today == 0:
        rows = tuple(
            StudentDayRow(
                student_id=s.id,
                name=s.full_name,
                reg_number=s.reg_number,
                day_status=None,
                total_classes_today=None,
                classes_attended_today=None,
            )
            for s in ordered
        )
        return BatchDayReport(
            school=school,
            batch=batch,
            subject=subject,
            date=day,
            session_held=False,
            total_classes_today=0,
            total_students=len(students),
            rows=rows,
        )

    by_student: dict[str, list[AttendanceEventBase]] = {}
    for event in scoped:
        if session_key(event, merge_unlabeled) is None:
            continue
        by_student.setdefault(event.user_id, []).append(event)

    rows: list[StudentDayRow] = []
    inconsistencies: list[str] = []
    total_present = 0
    for student in ordered:
        own = by_student.get(student.id, [])
        attended = sum(event_periods(e) for e in own if e.status == AttendanceStatus.PRESENT)
        if any(e.status == AttendanceStatus.PRESENT for e in own):
            status = DayStatus.PRESENT
            total_present += 1
        elif own:
            status = DayStatus.ABSENT_RECORDED
        else:
            status = DayStatus.ABSENT_INFERRED

        inconsistent = attended > total_today
        if inconsistent:
            message = (
                f"{student.full_name} ({student.id}) attended {attended} periods of {subject} "
                f"on {day} but only {total_today} were held"
            )
            logger.warning(f"Data inconsistency: {message}")
            inconsistencies.append(message)

        summary = summaries.get(student.id)
        subject_result = summary.subject(subject) if summary else None
        rows.append(
            StudentDayRow(
                student_id=student.id,
                name=student.full_name,
                reg_number=student.reg_number,
                day_status=status,
                total_classes_today=total_today,
                classes_attended_today=attended,
                subject_percentage=subject_result.percentage if subject_result else None,
                overall_percentage=summary.percentage if summary else None,
                subject_present_periods=subject_result.present_periods if subject_result else None,
                subject_total_periods=subject_result.total_periods if subject_result else None,
                overall_present_periods=summary.present_periods if summary else None,
                overall_total_periods=summary.total_periods if summary else None,
                inconsistent=inconsistent,
                mode=summary.mode if summary else MODE_UNAVAILABLE,
                degraded=summary.degraded if summary else True,
            )
        )

    total_students = len(students)
    return BatchDayReport(
        school=school,
        batch=batch,
        subject=subject,
        date=day,
        session_held=True,
        total_classes_today=total_today,
        total_students=total_students,
        rows=tuple(rows),
        sessions=reconciliation.sessions,
        total_present=total_present,
        total_absent=total_students - total_present,
        batch_percentage=percentage(total_present, total_students),
        inconsistencies=tuple(inconsistencies),
    )


async def _student_events_or_none(
    store: AttendanceStore, student: StudentProfile
) -> Optional[Sequence[AttendanceEventBase]]:
    try:
        return await store.events_for_student(student.id)
    except StoreUnavailable as e:
        logger.error(f"Could not load attendance for student {student.id}: {e}")
        return None


async def generate_batch_report(
    store: AttendanceStore,
    *,
    school: str,
    batch: str,
    subject: str,
    day: str,
    as_of: str | None = None,
) -> BatchDayReport:
    """Day report for one batch and subject with each student's historical percentages."""
    students = await store.find_students(school, batch)
    day_events = await store.events_for_subject_on(subject, day)

    summaries: dict[str, StudentAttendanceSummary] = {}
    if students and day_events:
        # Per-student reads run in parallel; a failed read only affects that row
        per_student = await asyncio.gather(*(_student_events_or_none(store, s) for s in students))
        subject_cache: dict[str, Sequence[AttendanceEventBase]] = {}
        for student, events in zip(students, per_student):
            if events is None:
                continue
            summaries[student.id] = await compute_student_summary(
                store,
                student.id,
                as_of=as_of,
                student_events=events,
                subject_cache=subject_cache,
                include_subjects=(subject,),
            )

    return build_batch_day_report(
        school=school,
        batch=batch,
        subject=subject,
        day=day,
        students=students,
        day_events=day_events,
        summaries=summaries,
    )
