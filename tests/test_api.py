from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient

from attendance_tracker.api.deps import get_attendance_store, get_current_user, get_leave_store
from attendance_tracker.config import settings
from attendance_tracker.main import app
from attendance_tracker.models.qr_session import QrSessionBase
from attendance_tracker.models.temp_photo import TempPhotoBase
from attendance_tracker.models.user import UserRole
from attendance_tracker.services.dates import local_date_string
from tests.fakes import make_event

FACULTY = SimpleNamespace(
    id="fac1",
    email="rao@example.com",
    role=UserRole.FACULTY,
    full_name="Dr. Rao",
    subjects=["DSA"],
    school=None,
    batch=None,
    reg_number=None,
    is_active=True,
)
STUDENT = SimpleNamespace(
    id="a",
    email="a@example.com",
    role=UserRole.STUDENT,
    full_name="Asha",
    subjects=[],
    school="SoCS",
    batch="B1",
    reg_number="R1",
    is_active=True,
)


@pytest.fixture
def as_user(store, leave_store):
    def login(user):
        app.dependency_overrides[get_current_user] = lambda: user
        app.dependency_overrides[get_attendance_store] = lambda: store
        app.dependency_overrides[get_leave_store] = lambda: leave_store

    yield login
    app.dependency_overrides.clear()


@pytest.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


async def test_requires_authentication(client):
    response = await client.get("/api/attendance/summary/me")

    assert response.status_code == 401


async def test_student_cannot_open_faculty_report(client, as_user):
    as_user(STUDENT)

    response = await client.get(
        "/api/reports/batch-day", params={"school": "SoCS", "batch": "B1", "subject": "DSA"}
    )

    assert response.status_code == 403


async def test_my_summary(client, as_user, store):
    as_user(STUDENT)
    store.events = [
        make_event("a", session_id="s1", periods=2),
        make_event("b", session_id="s2", periods=2),
    ]

    response = await client.get("/api/attendance/summary/me")

    assert response.status_code == 200
    data = response.json()
    assert data["mode"] == "fair"
    assert data["subjects"][0] == {"subject": "DSA", "present_periods": 2, "total_periods": 4, "percentage": 50}


async def test_batch_report_rejects_future_dates(client, as_user):
    as_user(FACULTY)
    tomorrow = (datetime.utcnow() + timedelta(days=2)).strftime("%Y-%m-%d")

    response = await client.get(
        "/api/reports/batch-day",
        params={"school": "SoCS", "batch": "B1", "subject": "DSA", "date": tomorrow},
    )

    assert response.status_code == 400


async def test_batch_report_without_session(client, as_user, store):
    as_user(FACULTY)
    store.add_student("a", "Asha")

    response = await client.get(
        "/api/reports/batch-day",
        params={"school": "SoCS", "batch": "B1", "subject": "DSA", "date": "2025-09-20"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["session_held"] is False
    assert data["rows"][0]["day_status"] is None


async def test_manual_attendance_for_unassigned_subject_is_forbidden(client, as_user):
    as_user(FACULTY)

    response = await client.post(
        "/api/attendance/manual",
        json={"school": "SoCS", "batch": "B1", "subject": "OS", "attendance": []},
    )

    assert response.status_code == 403


async def test_qr_issue_and_scan(client, as_user, store):
    store.add_student("a", "Asha")
    as_user(FACULTY)
    issued = await client.post("/api/qr/sessions", json={"school": "SoCS", "batch": "B1", "subject": "DSA", "periods": 2})
    assert issued.status_code == 200
    session_id = issued.json()["session_id"]

    as_user(STUDENT)
    first = await client.post("/api/qr/scan", json={"session_id": session_id})
    second = await client.post("/api/qr/scan", json={"session_id": session_id})

    assert first.status_code == 200
    assert second.status_code == 409
    assert len(store.events) == 1


async def test_expired_qr_returns_gone(client, as_user, store):
    store.add_student("a", "Asha")
    await store.save_qr_session(
        QrSessionBase(
            session_id="old",
            school="SoCS",
            batch="B1",
            subject="DSA",
            periods=1,
            faculty_id="fac1",
            date=local_date_string(),
            expires_at=datetime.utcnow() - timedelta(seconds=1),
        )
    )
    as_user(STUDENT)

    response = await client.post("/api/qr/scan", json={"session_id": "old"})

    assert response.status_code == 410


async def test_verification_round_trip(client, as_user, store, monkeypatch):
    monkeypatch.setattr(settings, "temp_photo_grace_seconds", 0)
    for sid, name in (("a", "Asha"), ("b", "Bala"), ("c", "Chitra")):
        store.add_student(sid, name)
    await store.save_qr_session(
        QrSessionBase(
            session_id="qr1",
            school="SoCS",
            batch="B1",
            subject="DSA",
            periods=2,
            faculty_id="fac1",
            date="2025-09-20",
            expires_at=datetime(2025, 9, 20, 5, 0),
        )
    )
    photo_ids = {}
    for sid in ("a", "b"):
        photo_ids[sid] = await store.add_temp_photo(
            TempPhotoBase(
                student_id=sid,
                school="SoCS",
                batch="B1",
                subject="DSA",
                periods=2,
                date="2025-09-20",
                qr_session_id="qr1",
                faculty_id="fac1",
            )
        )
    as_user(FACULTY)

    listing = await client.get("/api/verification/sessions/qr1")
    assert listing.status_code == 200
    body = listing.json()
    assert {p["decision"] for p in body["photos"]} == {"present"}
    assert body["summary"]["non_submitters"] == 1

    saved = await client.post(
        "/api/verification/sessions/qr1",
        json={"decisions": {photo_ids["b"]: "absent"}},
    )

    assert saved.status_code == 200
    assert saved.json()["events_created"] == 1
    assert [e.user_id for e in store.events] == ["a"]


async def test_leave_flow(client, as_user, leave_store):
    as_user(STUDENT)
    today = local_date_string()
    created = await client.post("/api/leaves", json={"subject": "DSA", "date": today, "reason": "Fever"})
    assert created.status_code == 200
    request_id = created.json()["id"]

    as_user(FACULTY)
    pending = await client.get("/api/leaves/pending")
    assert [r["id"] for r in pending.json()] == [request_id]
    decided = await client.post(f"/api/leaves/{request_id}/decision", json={"status": "approved"})
    assert decided.status_code == 200
    again = await client.post(f"/api/leaves/{request_id}/decision", json={"status": "rejected"})
    assert again.status_code == 409

    as_user(STUDENT)
    notes = await client.get("/api/notifications")
    assert notes.json()[0]["status"] == "approved"


class StudentAccount(SimpleNamespace):
    async def save(self):
        self.saves = getattr(self, "saves", 0) + 1


def _new_student(**fields):
    data = dict(vars(STUDENT))
    data.update(school=None, batch=None, reg_number=None, updated_at=None)
    data.update(fields)
    return StudentAccount(**data)


async def test_student_completes_profile_then_can_scan(client, as_user, store):
    student = _new_student()
    as_user(student)
    await store.save_qr_session(
        QrSessionBase(
            session_id="qr1",
            school="SoCS",
            batch="B1",
            subject="DSA",
            periods=1,
            faculty_id="fac1",
            date=local_date_string(),
            expires_at=datetime.utcnow() + timedelta(minutes=5),
        )
    )

    before = await client.post("/api/qr/scan", json={"session_id": "qr1"})
    assert before.status_code == 400

    response = await client.patch(
        "/api/auth/profile", json={"school": " SoCS ", "batch": "B1", "reg_number": "R9"}
    )

    assert response.status_code == 200
    assert response.json()["profile_complete"] is True
    assert (student.school, student.batch, student.reg_number) == ("SoCS", "B1", "R9")
    assert student.saves == 1

    after = await client.post("/api/qr/scan", json={"session_id": "qr1"})
    assert after.status_code == 200


async def test_profile_cannot_clear_school_or_batch(client, as_user):
    student = _new_student(school="SoCS", batch="B1")
    as_user(student)

    response = await client.patch("/api/auth/profile", json={"batch": "  "})

    assert response.status_code == 400
    assert student.batch == "B1"
    assert not hasattr(student, "saves")


async def test_faculty_cannot_edit_student_profile(client, as_user):
    as_user(FACULTY)

    response = await client.patch("/api/auth/profile", json={"school": "SoCS"})

    assert response.status_code == 403


async def test_faculty_cannot_self_register(client):
    response = await client.post(
        "/api/auth/register",
        json={
            "email": "new@example.com",
            "password": "secret123",
            "role": "faculty",
            "full_name": "New Faculty",
            "subjects": ["DSA"],
        },
    )

    assert response.status_code == 403


async def test_only_admins_create_faculty_accounts(client, as_user):
    as_user(FACULTY)

    response = await client.post(
        "/api/auth/users",
        json={
            "email": "new@example.com",
            "password": "secret123",
            "role": "faculty",
            "full_name": "New Faculty",
            "subjects": ["OS"],
        },
    )

    assert response.status_code == 403
