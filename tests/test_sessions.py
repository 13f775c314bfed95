from attendance_tracker.services.dates import AcademicWindow
from attendance_tracker.services.sessions import (
    reconcile_sessions,
    session_key,
    total_classes_held,
    usable_periods,
)
from tests.fakes import make_event


def test_session_periods_count_once_regardless_of_attendees(window):
    events = [make_event(f"stu{i}", session_id="s1", periods=2) for i in range(3)]

    assert total_classes_held(events, "DSA", window) == 2


def test_total_is_invariant_to_number_of_attendees(window):
    few = [make_event("a", session_id="s1", periods=3), make_event("a", session_id="s2", periods=1)]
    many = few + [make_event(f"x{i}", session_id=s, periods=p) for i in range(20) for s, p in (("s1", 3), ("s2", 1))]

    assert total_classes_held(few, "DSA", window) == total_classes_held(many, "DSA", window) == 4


def test_other_subjects_and_out_of_window_events_are_ignored():
    window = AcademicWindow(start="2025-09-16", end="2025-10-01")
    events = [
        make_event("a", session_id="s1", periods=2),
        make_event("a", subject="OS", session_id="s2", periods=5),
        make_event("a", date="2025-09-15", session_id="s3", periods=4),
        make_event("a", date="2025-10-02", session_id="s4", periods=4),
    ]

    assert total_classes_held(events, "DSA", window) == 2


def test_window_bounds_are_inclusive():
    window = AcademicWindow(start="2025-09-16", end="2025-09-20")
    events = [
        make_event("a", date="2025-09-16", session_id="first"),
        make_event("a", date="2025-09-20", session_id="last"),
    ]

    assert total_classes_held(events, "DSA", window) == 2


def test_most_frequent_periods_wins_and_session_is_flagged(window, caplog):
    events = [
        make_event("a", session_id="s1", periods=2),
        make_event("b", session_id="s1", periods=2),
        make_event("c", session_id="s1", periods=3),
    ]

    result = reconcile_sessions(events, subject="DSA", window=window)

    assert result.total_classes_held == 2
    assert result.sessions[0].consistent is False
    assert "Inconsistent periods for session s1" in caplog.text


def test_tie_goes_to_first_value_seen(window):
    events = [make_event("a", session_id="s1", periods=3), make_event("b", session_id="s1", periods=2)]

    assert total_classes_held(events, "DSA", window) == 3


def test_events_with_missing_fields_are_skipped(window):
    events = [
        make_event("a", session_id="s1", periods=2),
        make_event("b", subject=None, session_id="s2"),
        make_event("c", date=None, session_id="s3"),
        make_event("d", session_id="s4", periods=0),
        make_event("e", session_id="s5", periods=None),
    ]

    result = reconcile_sessions(events, subject="DSA", window=window)

    assert result.total_classes_held == 2
    assert result.session_count == 1
    assert result.skipped == 4


def test_qr_session_id_is_used_when_session_id_missing():
    event = make_event("a", session_id=None, qr_session_id="qr1")

    assert session_key(event) == "qr1"


def test_unlabeled_events_without_class_time_are_not_counted(window, caplog):
    events = [
        make_event("a", session_id=None, periods=2),
        make_event("a", session_id="s1", periods=1),
    ]

    result = reconcile_sessions(events, subject="DSA", window=window, merge_unlabeled=False)

    assert result.total_classes_held == 1
    assert result.unlabeled == 1
    assert "no session id" in caplog.text


def test_unlabeled_events_group_by_class_time_by_default(window):
    events = [
        make_event(f"stu{i}", session_id=None, periods=2, faculty_id="f1", class_time="09:00") for i in range(5)
    ] + [
        make_event("a", session_id=None, periods=1, faculty_id="f1", class_time="14:00"),
    ]

    result = reconcile_sessions(events, subject="DSA", window=window, merge_unlabeled=False)

    # Two classes that day, each counted once however many students attended
    assert result.total_classes_held == 3
    assert result.session_count == 2
    assert result.unlabeled == 0
    assert session_key(events[0], merge_unlabeled=False) == "2025-09-20_DSA_f1_09:00"


def test_unlabeled_events_merge_by_date_and_subject_when_enabled(window):
    events = [
        make_event("a", session_id=None, periods=2),
        make_event("b", session_id=None, periods=2),
        make_event("c", date="2025-09-21", session_id=None, periods=1),
    ]

    result = reconcile_sessions(events, subject="DSA", window=window, merge_unlabeled=True)

    assert result.total_classes_held == 3
    assert {s.key for s in result.sessions} == {"2025-09-20_DSA", "2025-09-21_DSA"}


def test_usable_periods():
    assert usable_periods(make_event("a", periods=4)) == 4
    assert usable_periods(make_event("a", periods=0)) is None
    assert usable_periods(make_event("a", periods=-1)) is None
    assert usable_periods(make_event("a", periods=None)) is None


def test_no_sessions_gives_zero(window):
    assert total_classes_held([], "DSA", window) == 0
