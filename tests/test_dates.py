from datetime import datetime

import pytest
from pydantic import ValidationError

from attendance_tracker.config import Settings
from attendance_tracker.services.dates import (
    AcademicWindow,
    academic_window,
    class_time,
    local_date_string,
    normalize_date_string,
    previous_date_string,
)


def test_local_date_uses_ist():
    # 20:00 UTC is already the next day in India
    assert local_date_string(datetime(2025, 9, 20, 20, 0)) == "2025-09-21"
    assert local_date_string(datetime(2025, 9, 20, 18, 0)) == "2025-09-20"
    assert class_time(datetime(2025, 9, 20, 4, 30)) == "10:00"


def test_previous_date_crosses_month():
    assert previous_date_string("2025-10-01") == "2025-09-30"


def test_normalize_date_string():
    assert normalize_date_string(" 2025-09-20 ") == "2025-09-20"
    with pytest.raises(ValueError):
        normalize_date_string("2025-9-20")


def test_window_contains_is_inclusive_and_ignores_missing_dates():
    window = AcademicWindow(start="2025-09-16", end="2025-09-30")

    assert window.contains("2025-09-16")
    assert window.contains("2025-09-30")
    assert not window.contains("2025-10-01")
    assert not window.contains(None)


def test_academic_window_starts_at_configured_date():
    window = academic_window("2025-10-01")

    assert (window.start, window.end) == ("2025-09-16", "2025-10-01")


def test_settings_reject_unpadded_start_date():
    with pytest.raises(ValidationError):
        Settings(debug=True, academic_start_date="2025-9-16")


def test_settings_require_jwt_secret_outside_debug():
    with pytest.raises(ValidationError):
        Settings(debug=False, jwt_secret_key="change-me-in-production")
