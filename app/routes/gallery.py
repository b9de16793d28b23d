"""
Gallery routes for public gallery photo retrieval.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.database import get_db
from app.errors import StorageError
from app.schemas import GalleryListResponse, GalleryPhotoResponse
from app.services.gallery import list_photos

logger = logging.getLogger(__name__)

# Create router instance
router = APIRouter()


@router.get("/gallery", response_model=GalleryListResponse)
async def get_gallery(db: AsyncSession = Depends(get_db)):
    """
    Get all gallery photos in display order.

    Raises:
        StorageError: 500 if the database query fails
    """
    try:
        photos = await list_photos(db)
    except Exception as e:
        logger.error(f"Failed to retrieve gallery photos: {str(e)}", exc_info=True)
        raise StorageError("Failed to retrieve gallery") from e

    logger.info(f"Retrieved {len(photos)} gallery photos")
    return GalleryListResponse(photos=[GalleryPhotoResponse.model_validate(p) for p in photos])
