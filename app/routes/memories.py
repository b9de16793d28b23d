"""
Public guestbook routes.
Anyone can read memories; submissions are rate limited per client address.
"""
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from app.config import Settings
from app.database import get_db
from app.dependencies import get_app_settings, get_blob_store, memory_submission_limit
from app.errors import AppError, StorageError, ValidationError
from app.schemas import MemoryCreatedResponse, MemoryListResponse, MemoryResponse
from app.services.blob_store import BlobStore
from app.services.memories import create_memory, list_memories
from app.utils.uploads import has_upload, read_image_upload
from app.utils.validator import validate_memory

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/memories", response_model=MemoryListResponse)
async def get_memories(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """
    Get memories, newest first.

    Args:
        limit: Optional page size
        offset: Number of memories to skip
        db: Database session (injected by FastAPI dependency)
    """
    try:
        memories = await list_memories(db, limit=limit, offset=offset)
    except Exception as e:
        logger.error(f"Error fetching memories: {str(e)}", exc_info=True)
        raise StorageError("Failed to retrieve memories") from e

    return MemoryListResponse(memories=[MemoryResponse.model_validate(m) for m in memories])


@router.post(
    "/memories",
    response_model=MemoryCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(memory_submission_limit)],
)
async def submit_memory(
    from_name: Optional[str] = Form(None, alias="from"),
    message: Optional[str] = Form(None),
    photo: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_app_settings),
):
    """
    Share a memory, optionally with a photo.

    Raises:
        ValidationError: 400 if name or message is missing or too long
        UploadError: 400 if the photo is not an acceptable image
        RateLimitError: 429 after too many submissions from one address
        StorageError: 500 if the photo or the memory cannot be saved
    """
    validation = validate_memory({"from": from_name, "message": message})
    if not validation.valid:
        raise ValidationError("Validation failed", errors=validation.errors)

    photo_url = None
    if has_upload(photo):
        content = await read_image_upload(photo, settings.MAX_UPLOAD_BYTES)
        uploaded = await blob_store.upload(content, photo.filename, "memories")
        photo_url = uploaded["url"]

    try:
        memory = await create_memory(db, from_name.strip(), message.strip(), photo_url)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error creating memory: {str(e)}", exc_info=True)
        if photo_url:
            await blob_store.delete(photo_url)
        raise StorageError("Failed to save memory") from e

    return MemoryCreatedResponse(memory=MemoryResponse.model_validate(memory))
