"""Session reconciliation: how many periods were actually taught.

Per-student events are grouped into teaching sessions so that a session's
periods count once no matter how many students it has events for.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Optional

from attendance_tracker.config import settings
from attendance_tracker.models.attendance import AttendanceEventBase
from attendance_tracker.services.dates import AcademicWindow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSummary:
    key: str
    subject: str
    date: str
    periods: int
    event_count: int
    consistent: bool


@dataclass(frozen=True)
class SessionReconciliation:
    sessions: tuple[SessionSummary, ...]
    total_classes_held: int
    skipped: int = 0  # missing date/subject or unusable periods
    unlabeled: int = 0  # no session id or class time, merging disabled

    @property
    def session_count(self) -> int:
        return len(self.sessions)


def is_aggregatable(event: AttendanceEventBase) -> bool:
    return bool(event.date) and bool(event.subject)


def usable_periods(event: AttendanceEventBase) -> Optional[int]:
    try:
        periods = int(event.periods) if event.periods is not None else None
    except (TypeError, ValueError):
        return None
    if periods is None or periods <= 0:
        return None
    return periods


def session_key(event: AttendanceEventBase, merge_unlabeled: bool | None = None) -> Optional[str]:
    """Session identifier for an event, or None when it cannot be attributed.

    Without a session id the event is keyed by the class it was marked in
    (date, subject, faculty and class time), which every attendee of that class
    shares. The coarser ``date_subject`` key is only used when merging is
    enabled, since it folds every unlabeled session of a day into one.
    """
    if merge_unlabeled is None:
        merge_unlabeled = settings.merge_unlabeled_sessions
    key = event.session_id or event.qr_session_id
    if key:
        return key
    if not (event.date and event.subject):
        return None
    if merge_unlabeled:
        return f"{event.date}_{event.subject}"
    if event.class_time:
        return f"{event.date}_{event.subject}_{event.faculty_id or '-'}_{event.class_time}"
    return None


def _most_frequent(values: list[int]) -> int:
    # Counter keeps insertion order, so ties go to the value seen first
    return Counter(values).most_common(1)[0][0]


def reconcile_sessions(
    events: Iterable[AttendanceEventBase],
    *,
    subject: str | None = None,
    window: AcademicWindow | None = None,
    merge_unlabeled: bool | None = None,
) -> SessionReconciliation:
    """Group events into sessions and sum one ``periods`` value per session."""
    grouped: dict[str, list[AttendanceEventBase]] = {}
    periods_by_key: dict[str, list[int]] = {}
    skipped = 0
    unlabeled = 0

    for event in events:
        if not is_aggregatable(event):
            skipped += 1
            continue
        if subject is not None and event.subject != subject:
            continue
        if window is not None and not window.contains(event.date):
            continue
        periods = usable_periods(event)
        if periods is None:
            skipped += 1
            continue
        key = session_key(event, merge_unlabeled)
        if key is None:
            unlabeled += 1
            continue
        grouped.setdefault(key, []).append(event)
        periods_by_key.setdefault(key, []).append(periods)

    if skipped:
        logger.info(f"Skipped {skipped} attendance events with missing date, subject or periods")
    if unlabeled:
        logger.warning(
            f"{unlabeled} attendance events have no session id or class time and were not counted; "
            "enable MERGE_UNLABELED_SESSIONS to group them by date and subject"
        )

    sessions: list[SessionSummary] = []
    for key, members in grouped.items():
        values = periods_by_key[key]
        periods = _most_frequent(values)
        consistent = len(set(values)) == 1
        if not consistent:
            logger.warning(
                f"Inconsistent periods for session {key}: {sorted(set(values))}; using {periods}"
            )
        sessions.append(
            SessionSummary(
                key=key,
                subject=members[0].subject,
                date=members[0].date,
                periods=periods,
                event_count=len(members),
                consistent=consistent,
            )
        )

    return SessionReconciliation(
        sessions=tuple(sessions),
        total_classes_held=sum(s.periods for s in sessions),
        skipped=skipped,
        unlabeled=unlabeled,
    )


def total_classes_held(
    events: Iterable[AttendanceEventBase],
    subject: str,
    window: AcademicWindow,
    merge_unlabeled: bool | None = None,
) -> int:
    return reconcile_sessions(
        events, subject=subject, window=window, merge_unlabeled=merge_unlabeled
    ).total_classes_held
