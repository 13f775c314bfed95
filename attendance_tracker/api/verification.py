"""Faculty review of verification photos for a QR session."""
from dataclasses import asdict

from fastapi import APIRouter, BackgroundTasks
from pydantic import BaseModel, Field

from attendance_tracker.api.deps import FacultyOrAdmin, Store, is_admin
from attendance_tracker.services.photos import cleanup_after_grace
from attendance_tracker.services.verification import DecisionStore, load_review

router = APIRouter()


class SaveDecisionsRequest(BaseModel):
    # photo id -> present / absent / pending; photos left out stay present
    decisions: dict[str, str] = Field(default_factory=dict)


def _review_response(qr_session_id: str, review: DecisionStore) -> dict:
    decisions = review.decisions
    return {
        "qr_session_id": qr_session_id,
        "photos": [
            {"id": str(p.id), **p.model_dump(exclude={"id", "revision_id"}), "decision": decisions[str(p.id)].value}
            for p in review.photos
        ],
        "summary": asdict(review.summary()),
    }


@router.get("/sessions/{qr_session_id}")
async def pending_verification(qr_session_id: str, user: FacultyOrAdmin, store: Store):
    """Pending photos with every decision defaulted to present."""
    review = await load_review(store, qr_session_id, None if is_admin(user) else str(user.id))
    return _review_response(qr_session_id, review)


@router.post("/sessions/{qr_session_id}")
async def save_verification(
    qr_session_id: str,
    data: SaveDecisionsRequest,
    user: FacultyOrAdmin,
    store: Store,
    background_tasks: BackgroundTasks,
):
    review = await load_review(store, qr_session_id, None if is_admin(user) else str(user.id))
    review.apply(data.decisions)
    summary = review.summary()
    events = await review.save(store, verified_by=str(user.id))
    background_tasks.add_task(cleanup_after_grace, store)
    return {
        "status": "saved",
        "events_created": len(events),
        "summary": asdict(summary),
    }
