"""Removal of verification photos once the faculty decision is saved."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from attendance_tracker.config import settings
from attendance_tracker.services.s3 import delete_from_s3
from attendance_tracker.services.store import AttendanceStore

logger = logging.getLogger(__name__)

BlobDeleter = Callable[[str], Awaitable[bool]]


async def cleanup_processed_photos(
    store: AttendanceStore,
    *,
    delete_blob: BlobDeleter = delete_from_s3,
    now: Optional[datetime] = None,
    grace_seconds: Optional[int] = None,
    limit: int = 100,
) -> int:
    """Delete processed photos older than the grace period, blobs included.

    Runs in the background after a save; errors are logged and never raised.
    Returns the number of photo records deleted.
    """
    now = now or datetime.utcnow()
    if grace_seconds is None:
        grace_seconds = settings.temp_photo_grace_seconds
    cutoff = now - timedelta(seconds=grace_seconds)
    try:
        photos = await store.processed_photos_before(cutoff, limit)
        if not photos:
            return 0
        ids: list[str] = []
        for photo in photos:
            if photo.photo_key and not await delete_blob(photo.photo_key):
                logger.warning(f"Photo {photo.photo_key} left in storage; record removed anyway")
            ids.append(str(getattr(photo, "id")))
        deleted = await store.delete_temp_photos(ids)
        logger.info(f"Cleaned up {deleted} processed temp photos")
        return deleted
    except Exception as e:
        logger.error(f"Temp photo cleanup failed: {e}")
        return 0


async def cleanup_after_grace(store: AttendanceStore, grace_seconds: Optional[int] = None) -> int:
    """Wait out the grace period, then sweep; scheduled as a background task after a save."""
    if grace_seconds is None:
        grace_seconds = settings.temp_photo_grace_seconds
    await asyncio.sleep(grace_seconds)
    return await cleanup_processed_photos(store, grace_seconds=grace_seconds)
