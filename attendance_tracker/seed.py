"""Seed default admin user if not present."""
import logging
import os

from attendance_tracker.api.deps import get_password_hash
from attendance_tracker.models.user import User, UserRole

logger = logging.getLogger(__name__)

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@attendance.local")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "change-me-admin")
ADMIN_FULL_NAME = "Attendance Admin"


async def seed_admin():
    existing = await User.find_one(User.email == ADMIN_EMAIL)
    if existing:
        return
    await User(
        email=ADMIN_EMAIL,
        hashed_password=get_password_hash(ADMIN_PASSWORD),
        role=UserRole.ADMIN,
        full_name=ADMIN_FULL_NAME,
    ).insert()
    logger.info(f"Seeded admin user {ADMIN_EMAIL}")
