"""
Image upload checks.
Rejects anything that is not a jpeg/png/gif/webp image within the size cap
before it reaches the blob store.
"""
import io
import logging
import os
import re
from typing import Optional

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from app.errors import UploadError

logger = logging.getLogger(__name__)

ALLOWED_TYPES = re.compile(r"jpeg|jpg|png|gif|webp")


def is_allowed_image_type(filename: str, content_type: Optional[str]) -> bool:
    """Both the extension and the MIME type must name an allowed image format."""
    extension = os.path.splitext(filename or "")[1].lower()
    return bool(ALLOWED_TYPES.search(extension)) and bool(ALLOWED_TYPES.search(content_type or ""))


def is_decodable_image(content: bytes) -> bool:
    """Check that the bytes open as an image of a sane pixel size."""
    try:
        with Image.open(io.BytesIO(content)) as image:
            image.verify()
        return True
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
        logger.debug(f"Upload is not a readable image: {str(e)}")
        return False


async def read_image_upload(file: UploadFile, max_bytes: int) -> bytes:
    """
    Read and check an uploaded photo.

    Args:
        file: Multipart file from the request
        max_bytes: Size cap in bytes

    Returns:
        bytes: File content

    Raises:
        UploadError: If the type, size or content is not acceptable
    """
    if not is_allowed_image_type(file.filename, file.content_type):
        raise UploadError("Only image files are allowed")

    # Read one byte past the cap so oversized files are detected without
    # loading them entirely
    content = await file.read(max_bytes + 1)
    if len(content) > max_bytes:
        raise UploadError(f"File is too large. Maximum size is {max_bytes // (1024 * 1024)}MB")

    if not content or not is_decodable_image(content):
        raise UploadError("Only image files are allowed")

    return content


def has_upload(file: Optional[UploadFile]) -> bool:
    """Browsers send an empty part with no filename when no file was chosen."""
    return file is not None and bool(file.filename)
