"""Users for both dashboards: faculty, students and admins."""
from datetime import datetime
from enum import Enum
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, EmailStr, Field


class UserRole(str, Enum):
    ADMIN = "admin"
    FACULTY = "faculty"
    STUDENT = "student"


class User(Document):
    """User document; profile fields depend on the role."""

    email: Indexed(EmailStr, unique=True)
    hashed_password: str
    role: UserRole
    full_name: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Student profile
    school: Optional[str] = None
    batch: Optional[str] = None
    reg_number: Optional[str] = None

    # Faculty profile: subjects taught
    subjects: list[str] = Field(default_factory=list)

    # FCM tokens for notifications
    fcm_tokens: list[str] = Field(default_factory=list)

    class Settings:
        name = "users"
        use_state_management = True
        indexes = [
            [("role", 1), ("school", 1), ("batch", 1)],
        ]


class StudentProfile(BaseModel):
    """Roster entry for one enrolled student."""

    id: str
    full_name: str
    email: Optional[str] = None
    reg_number: Optional[str] = None
    school: Optional[str] = None
    batch: Optional[str] = None


class UserCreate(BaseModel):
    email: EmailStr
    password: str
    role: UserRole
    full_name: str
    school: Optional[str] = None
    batch: Optional[str] = None
    reg_number: Optional[str] = None
    subjects: list[str] = Field(default_factory=list)



class StudentProfileUpdate(BaseModel):
    """Fields a student sets when completing or editing their profile."""

    full_name: Optional[str] = None
    reg_number: Optional[str] = None
    school: Optional[str] = None
    batch: Optional[str] = None
