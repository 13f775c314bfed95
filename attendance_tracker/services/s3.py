"""AWS S3: temporary verification photos."""
import asyncio
import logging
import uuid

import boto3
from botocore.exceptions import ClientError

from attendance_tracker.config import settings

logger = logging.getLogger(__name__)

_s3 = None


def get_s3():
    global _s3
    if _s3 is None:
        _s3 = boto3.client(
            "s3",
            region_name=settings.aws_region,
            aws_access_key_id=settings.aws_access_key_id or None,
            aws_secret_access_key=settings.aws_secret_access_key or None,
        )
    return _s3


def _put_object_sync(key: str, body: bytes, content_type: str) -> None:
    get_s3().put_object(
        Bucket=settings.s3_bucket_temp_photos,
        Key=key,
        Body=body,
        ContentType=content_type or "image/jpeg",
    )


async def upload_temp_photo_to_s3(
    file,
    *,
    student_id: str,
    qr_session_id: str,
) -> tuple[str, str]:
    """Upload a verification photo; return (public_url, s3_key)."""
    ext = (file.filename or "").split(".")[-1] or "jpg"
    key = f"temp-photos/{qr_session_id}/{student_id}_{uuid.uuid4().hex}.{ext}"
    bucket = settings.s3_bucket_temp_photos
    content = await file.read()
    await asyncio.to_thread(_put_object_sync, key, content, file.content_type or "image/jpeg")
    url = f"https://{bucket}.s3.{settings.aws_region}.amazonaws.com/{key}"
    return url, key


async def delete_from_s3(key: str, bucket: str = settings.s3_bucket_temp_photos) -> bool:
    """Delete object from S3; False when S3 refused."""
    try:
        await asyncio.to_thread(get_s3().delete_object, Bucket=bucket, Key=key)
    except ClientError as e:
        logger.warning(f"Could not delete s3://{bucket}/{key}: {e}")
        return False
    return True
