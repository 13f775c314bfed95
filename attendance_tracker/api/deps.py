"""Shared dependencies: JWT auth, role checks and store access."""
from datetime import datetime, timedelta
from typing import Annotated, Optional

import bcrypt
from beanie import PydanticObjectId
from bson.errors import InvalidId
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from attendance_tracker.config import settings
from attendance_tracker.models.user import StudentProfile, User, UserRole
from attendance_tracker.services.membership import profile_from_user
from attendance_tracker.services.mongo_store import MongoAttendanceStore, MongoLeaveStore
from attendance_tracker.services.store import AttendanceStore, LeaveStore

security = HTTPBearer(auto_error=False)


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def create_access_token(subject: str, role: str) -> str:
    expire = datetime.utcnow() + timedelta(minutes=settings.jwt_access_token_expire_minutes)
    to_encode = {"sub": subject, "role": role, "exp": expire, "type": "access"}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_refresh_token(subject: str) -> str:
    expire = datetime.utcnow() + timedelta(days=settings.jwt_refresh_token_expire_days)
    to_encode = {"sub": subject, "exp": expire, "type": "refresh"}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str, expected_type: str) -> str:
    """Return the user id from a token of the given type."""
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    if payload.get("type", "access") != expected_type:
        raise HTTPException(status_code=401, detail="Invalid token type")
    user_id: Optional[str] = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")
    return user_id


async def load_active_user(user_id: str) -> User:
    try:
        user = await User.get(PydanticObjectId(user_id))
    except InvalidId:
        user = None
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return user


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> User:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user_id = decode_token(credentials.credentials, "access")
    return await load_active_user(user_id)


def require_roles(*allowed: UserRole):
    allowed_values = [role.value for role in allowed]

    async def checker(user: Annotated[User, Depends(get_current_user)]):
        if user.role not in allowed_values:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return checker


async def get_student_profile(
    user: Annotated[User, Depends(require_roles(UserRole.STUDENT))],
) -> StudentProfile:
    return profile_from_user(user)


def get_attendance_store() -> AttendanceStore:
    return MongoAttendanceStore()


def get_leave_store() -> LeaveStore:
    return MongoLeaveStore()


def is_admin(user) -> bool:
    return user.role == UserRole.ADMIN


# Type aliases for route injection
CurrentUser = Annotated[User, Depends(get_current_user)]
AdminOnly = Annotated[User, Depends(require_roles(UserRole.ADMIN))]
FacultyOrAdmin = Annotated[User, Depends(require_roles(UserRole.FACULTY, UserRole.ADMIN))]
StudentUser = Annotated[User, Depends(require_roles(UserRole.STUDENT))]
CurrentStudent = Annotated[StudentProfile, Depends(get_student_profile)]
Store = Annotated[AttendanceStore, Depends(get_attendance_store)]
Leaves = Annotated[LeaveStore, Depends(get_leave_store)]
