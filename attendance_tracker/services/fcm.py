"""Firebase Cloud Messaging: leave decision notifications."""
import asyncio
import logging
from typing import Sequence

import firebase_admin
from firebase_admin import credentials, messaging

from attendance_tracker.config import settings
from attendance_tracker.models.notification import NotificationBase

logger = logging.getLogger(__name__)

_firebase_app = None


def _get_firebase_app():
    global _firebase_app
    if _firebase_app is not None:
        return _firebase_app

    if not settings.firebase_credentials_path:
        logger.warning("FIREBASE_CREDENTIALS_PATH not set. FCM will be disabled.")
        return None

    try:
        cred = credentials.Certificate(settings.firebase_credentials_path)
        _firebase_app = firebase_admin.initialize_app(cred)
        return _firebase_app
    except Exception as e:
        logger.error(f"Failed to initialize Firebase app: {e}")
        return None


async def send_leave_status_notification(tokens: Sequence[str], notification: NotificationBase) -> None:
    """Push a leave decision to the student's devices; failures are only logged."""
    app = _get_firebase_app()
    if not app or not tokens:
        return

    tokens = list(tokens)
    # Batch send limit is 500
    for i in range(0, len(tokens), 500):
        batch = tokens[i:i + 500]
        message = messaging.MulticastMessage(
            notification=messaging.Notification(
                title=notification.title,
                body=notification.message[:100] + "..." if len(notification.message) > 100 else notification.message,
            ),
            data={
                "type": notification.type,
                "request_id": notification.related_request_id or "",
                "status": notification.status or "",
            },
            tokens=batch,
        )
        try:
            response = await asyncio.to_thread(messaging.send_each_for_multicast, message)
            logger.info(
                f"Sent leave notification to {response.success_count} devices. Errors: {response.failure_count}"
            )
        except Exception as e:
            logger.error(f"FCM leave notification failed: {e}")
