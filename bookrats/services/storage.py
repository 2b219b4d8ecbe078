"""Photo storage on an S3 compatible object store."""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from bookrats.config import Settings
from bookrats.logging_config import get_logger
from bookrats.utils.errors import BookRatsError, ErrorCode

logger = get_logger(__name__)


class PhotoError(BookRatsError):
    """Photo validation or upload error."""


@dataclass(frozen=True)
class PhotoUpload:
    """An uploaded file as received from the client."""

    filename: str | None
    content_type: str | None
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        suffix = PurePosixPath(self.filename or "").suffix.lstrip(".").lower()
        return suffix or "jpg"


def validate_photo(photo: PhotoUpload, allowed_types: list[str], max_bytes: int) -> None:
    """Reject photos with a disallowed content type or size.

    Raises:
        PhotoError: PHOTO_INVALID_TYPE or PHOTO_TOO_LARGE
    """
    if photo.content_type not in allowed_types:
        raise PhotoError(
            ErrorCode.PHOTO_INVALID_TYPE,
            "Photo must be JPEG, PNG, WEBP, or GIF.",
            {"contentType": photo.content_type},
        )
    if photo.size > max_bytes:
        raise PhotoError(
            ErrorCode.PHOTO_TOO_LARGE,
            f"Photo must be smaller than {max_bytes // (1024 * 1024)} MB.",
            {"size": photo.size, "maxBytes": max_bytes},
        )


def build_object_key(*parts: Any, extension: str) -> str:
    """`{part}/.../{epoch_ms}.{ext}` namespaced by owner."""
    stamp = int(time.time() * 1000)
    prefix = "/".join(str(p) for p in parts)
    return f"{prefix}/{stamp}.{extension}"


class PhotoStorage:
    """Uploads photos and returns their public URL."""

    def __init__(self, settings: Settings, session: aioboto3.Session | None = None):
        self._settings = settings
        self._session = session or aioboto3.Session(
            aws_access_key_id=settings.s3_access_key_id,
            aws_secret_access_key=settings.s3_secret_access_key,
            region_name=settings.s3_region,
        )

    @property
    def checkin_bucket(self) -> str:
        return self._settings.storage_checkin_bucket

    @property
    def group_bucket(self) -> str:
        return self._settings.storage_group_bucket

    def validate(self, photo: PhotoUpload) -> None:
        validate_photo(
            photo,
            allowed_types=self._settings.allowed_photo_types,
            max_bytes=self._settings.photo_max_bytes,
        )

    def public_url(self, bucket: str, key: str) -> str:
        base = self._settings.storage_public_url.rstrip("/")
        return f"{base}/{bucket}/{key}"

    async def upload(self, bucket: str, key: str, photo: PhotoUpload) -> str:
        """Store the photo under `bucket/key`.

        Args:
            bucket: Target bucket name
            key: Object key
            photo: Validated upload

        Returns:
            Public URL of the stored object

        Raises:
            PhotoError: PHOTO_UPLOAD_FAILED when the store rejects the write
        """
        try:
            async with self._session.client(
                "s3",
                endpoint_url=self._settings.s3_endpoint_url,
            ) as s3:
                await s3.put_object(
                    Bucket=bucket,
                    Key=key,
                    Body=photo.data,
                    ContentType=photo.content_type,
                )
        except (BotoCoreError, ClientError) as e:
            logger.error("photo_upload_failed", bucket=bucket, key=key, error=str(e))
            raise PhotoError(
                ErrorCode.PHOTO_UPLOAD_FAILED,
                f"Photo upload failed: {e}",
                {"bucket": bucket},
            ) from e

        logger.info("photo_uploaded", bucket=bucket, key=key, size=photo.size)
        return self.public_url(bucket, key)

    async def discard(self, bucket: str, key: str) -> None:
        """Delete an object whose owning row was never written.

        Failures are logged and swallowed; the caller is already reporting
        its own error.
        """
        try:
            async with self._session.client(
                "s3",
                endpoint_url=self._settings.s3_endpoint_url,
            ) as s3:
                await s3.delete_object(Bucket=bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            logger.warning("photo_discard_failed", bucket=bucket, key=key, error=str(e))
            return
        logger.info("photo_discarded", bucket=bucket, key=key)

    async def store(self, bucket: str, photo: PhotoUpload, *key_parts: Any) -> str:
        """Validate, key and upload in one step."""
        self.validate(photo)
        key = build_object_key(*key_parts, extension=photo.extension)
        return await self.upload(bucket, key, photo)
