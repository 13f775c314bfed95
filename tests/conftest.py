import os

# Settings are read at import time; the default JWT secret is only accepted in debug mode
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ACADEMIC_START_DATE", "2025-09-16")

import pytest

from attendance_tracker.services.dates import AcademicWindow
from tests.fakes import FakeAttendanceStore, FakeLeaveStore


@pytest.fixture
def window() -> AcademicWindow:
    return AcademicWindow(start="2025-09-16", end="2025-12-31")


@pytest.fixture
def store() -> FakeAttendanceStore:
    return FakeAttendanceStore()


@pytest.fixture
def leave_store() -> FakeLeaveStore:
    return FakeLeaveStore()
