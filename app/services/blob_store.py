"""
Blob storage for uploaded photos.
Photos live in Cloudinary; the database only keeps their public URL.
"""
import asyncio
import logging
import os
import re
import time
from typing import Dict, Protocol

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from app.config import Settings
from app.errors import StorageError

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    async def upload(self, content: bytes, filename: str, folder: str) -> Dict[str, str]:
        ...

    async def delete(self, url: str) -> None:
        ...


def build_blob_key(filename: str, folder: str) -> str:
    """
    Build the storage key for an upload: {folder}/{unix-millis}-{stem}.
    Cloudinary adds the extension itself, so it is stripped here.
    """
    stem = os.path.splitext(os.path.basename(filename))[0] or "photo"
    stem = re.sub(r"[^A-Za-z0-9_-]+", "-", stem).strip("-") or "photo"
    return f"{folder}/{int(time.time() * 1000)}-{stem}"


def extract_public_id_from_url(url: str) -> str:
    """
    Extract Cloudinary public_id from URL.

    Cloudinary URLs typically look like:
    https://res.cloudinary.com/{cloud_name}/image/upload/v{version}/{public_id}.{format}
    or
    https://res.cloudinary.com/{cloud_name}/image/upload/{public_id}.{format}

    Args:
        url: Full Cloudinary URL

    Returns:
        str: Public ID (e.g., "gallery/1700000000000-image" without file extension)

    Raises:
        ValueError: If URL format is invalid
    """
    match = re.search(r'/image/upload(?:/v\d+)?/(.+)$', url)
    if not match:
        raise ValueError(f"Invalid Cloudinary URL format: {url}")

    parts = match.group(1).split('/')
    if '.' in parts[-1]:
        parts[-1] = parts[-1].rsplit('.', 1)[0]
    return '/'.join(parts)


class CloudinaryBlobStore:
    """
    BlobStore backed by Cloudinary.
    The Cloudinary SDK is blocking, so calls run in a worker thread.
    """

    def __init__(self, settings: Settings, max_retries: int = 3):
        self.max_retries = max_retries
        cloudinary.config(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
            secure=True  # Always use HTTPS for secure URLs
        )

    async def upload(self, content: bytes, filename: str, folder: str) -> Dict[str, str]:
        """
        Upload photo bytes with retry on transient Cloudinary errors.

        Args:
            content: Raw file bytes
            filename: Original filename, used to build the public id
            folder: "memories" or "gallery"

        Returns:
            dict: {"url": secure HTTPS URL}

        Raises:
            StorageError: If the upload fails after all retries
        """
        public_id = build_blob_key(filename, folder)

        for attempt in range(self.max_retries):
            try:
                result = await asyncio.to_thread(
                    cloudinary.uploader.upload,
                    content,
                    public_id=public_id,
                    resource_type="image",
                    overwrite=False,
                )
                logger.info(f"Successfully uploaded image: {result['public_id']}")
                return {"url": result["secure_url"]}

            except CloudinaryError as e:
                logger.warning(f"Cloudinary upload error (attempt {attempt + 1}/{self.max_retries}): {str(e)}")

                if attempt < self.max_retries - 1:
                    await asyncio.sleep(2 ** attempt)  # 1s, 2s, 4s backoff
                    continue

                logger.error(f"Cloudinary upload failed after {self.max_retries} attempts: {str(e)}")
                raise StorageError("Failed to upload file") from e

            except Exception as e:
                logger.error(f"Unexpected error during image upload: {str(e)}", exc_info=True)
                raise StorageError("Failed to upload file") from e

    async def delete(self, url: str) -> None:
        """
        Delete a photo by URL. Failures are logged, never raised: the blob
        may already be gone and callers treat deletes as idempotent.
        """
        try:
            public_id = extract_public_id_from_url(url)
        except ValueError as e:
            logger.warning(f"Skipping blob deletion: {str(e)}")
            return

        try:
            result = await asyncio.to_thread(
                cloudinary.uploader.destroy,
                public_id,
                invalidate=True,  # Invalidate CDN cache
                resource_type="image",
            )
            if result.get("result") in ("ok", "not found"):
                logger.info(f"Deleted image from Cloudinary: {public_id} (result: {result.get('result')})")
            else:
                logger.warning(f"Unexpected Cloudinary delete result for {public_id}: {result}")
        except Exception as e:
            logger.error(f"Error deleting {public_id} from Cloudinary: {str(e)}", exc_info=True)


def validate_cloudinary_config(settings: Settings) -> bool:
    """
    Validate that Cloudinary is properly configured.

    Returns:
        bool: True if Cloudinary is configured, False otherwise
    """
    for name in ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET"):
        if not getattr(settings, name):
            logger.warning(f"{name} not configured")
            return False
    return True
