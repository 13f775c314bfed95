"""JWT-based stateless authentication and account profiles."""
import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from attendance_tracker.api.deps import (
    AdminOnly,
    CurrentUser,
    StudentUser,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    load_active_user,
    verify_password,
)
from attendance_tracker.models.user import StudentProfileUpdate, User, UserCreate, UserRole

logger = logging.getLogger(__name__)

router = APIRouter()


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    email: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class FCMTokenRequest(BaseModel):
    token: str


def _tokens(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(str(user.id), user.role.value),
        refresh_token=create_refresh_token(str(user.id)),
    )


def _profile(user) -> dict:
    return {
        "id": str(user.id),
        "email": user.email,
        "role": UserRole(user.role).value,
        "full_name": user.full_name,
        "school": user.school,
        "batch": user.batch,
        "reg_number": user.reg_number,
        "subjects": user.subjects,
        "profile_complete": user.role != UserRole.STUDENT or bool(user.school and user.batch),
    }


async def _create_user(data: UserCreate) -> User:
    email = str(data.email).lower()
    existing = await User.find_one(User.email == email)
    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")
    user = User(
        email=email,
        hashed_password=get_password_hash(data.password),
        role=data.role,
        full_name=data.full_name,
        school=(data.school or "").strip() or None,
        batch=(data.batch or "").strip() or None,
        reg_number=data.reg_number,
        subjects=[s.strip() for s in data.subjects if s.strip()],
    )
    await user.insert()
    return user


@router.post("/login", response_model=TokenResponse)
async def login(req: LoginRequest):
    user = await User.find_one(User.email == req.email.strip().lower())
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not verify_password(req.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return _tokens(user)


@router.post("/register", response_model=TokenResponse)
async def register(data: UserCreate):
    """Self-registration is for students; faculty accounts and their subjects come from an admin."""
    if data.role != UserRole.STUDENT:
        raise HTTPException(status_code=403, detail="Only students can self-register")
    user = await _create_user(data)
    return _tokens(user)


@router.post("/users", status_code=201)
async def create_user(data: UserCreate, admin: AdminOnly):
    """Create a faculty or student account."""
    if data.role == UserRole.ADMIN:
        raise HTTPException(status_code=403, detail="Admin accounts are seeded, not created")
    user = await _create_user(data)
    logger.info(f"Admin {admin.id} created {user.role.value} account {user.email}")
    return _profile(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(req: RefreshRequest):
    user_id = decode_token(req.refresh_token, "refresh")
    user = await load_active_user(user_id)
    return _tokens(user)


@router.get("/me")
async def me(user: CurrentUser):
    return _profile(user)


@router.patch("/profile")
async def update_profile(data: StudentProfileUpdate, user: StudentUser):
    """Complete or edit the student profile; school and batch must match the QR sessions."""
    update_data = {k: (v or "").strip() for k, v in data.model_dump(exclude_unset=True).items()}
    for field in ("full_name", "school", "batch"):
        if field in update_data and not update_data[field]:
            raise HTTPException(status_code=400, detail=f"{field} cannot be empty")

    for key, value in update_data.items():
        setattr(user, key, value or None)
    user.updated_at = datetime.utcnow()
    await user.save()
    logger.info(f"Student {user.id} updated profile fields {sorted(update_data)}")
    return _profile(user)


@router.post("/fcm-token")
async def register_fcm_token(req: FCMTokenRequest, user: CurrentUser):
    if req.token not in user.fcm_tokens:
        user.fcm_tokens.append(req.token)
        # Limit tokens per user to 5 to prevent bloat
        if len(user.fcm_tokens) > 5:
            user.fcm_tokens = user.fcm_tokens[-5:]
        await user.save()
    return {"status": "ok"}
