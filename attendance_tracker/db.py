"""MongoDB connection and Beanie document registration."""
from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from attendance_tracker.config import settings
from attendance_tracker.models import (
    User,
    AttendanceEvent,
    TempPhoto,
    QrSession,
    LeaveRequest,
    Notification,
)


_client = None


async def db_startup():
    """Connect to MongoDB and initialize Beanie ODM."""
    global _client
    _client = AsyncIOMotorClient(settings.mongodb_url)
    await init_beanie(
        database=_client[settings.mongodb_db_name],
        document_models=[
            User,
            AttendanceEvent,
            TempPhoto,
            QrSession,
            LeaveRequest,
            Notification,
        ],
    )


async def db_shutdown():
    """Close MongoDB connection."""
    global _client
    if _client:
        _client.close()
        _client = None


def get_client() -> AsyncIOMotorClient:
    """Client used to open sessions for multi-document transactions."""
    if _client is None:
        raise RuntimeError("Database is not initialized; call db_startup() first")
    return _client


async def init_db():
    """Alias for db_startup."""
    await db_startup()
