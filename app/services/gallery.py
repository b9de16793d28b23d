"""
Persistence for gallery photos and their display order.
"""
from typing import Iterable, List, Tuple
import logging

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import NotFoundError
from app.models import GalleryPhoto

logger = logging.getLogger(__name__)


async def list_photos(db: AsyncSession) -> List[GalleryPhoto]:
    """Get all gallery photos ordered by display_order ascending."""
    result = await db.execute(
        select(GalleryPhoto).order_by(GalleryPhoto.display_order.asc(), GalleryPhoto.id.asc())
    )
    return list(result.scalars().all())


async def get_photo(db: AsyncSession, photo_id: int) -> GalleryPhoto:
    result = await db.execute(select(GalleryPhoto).where(GalleryPhoto.id == photo_id))
    photo = result.scalar_one_or_none()
    if photo is None:
        raise NotFoundError("Photo not found")
    return photo


async def create_photo(
    db: AsyncSession,
    filename: str,
    photo_url: str,
    caption: str = "",
) -> GalleryPhoto:
    """
    Add a photo at the end of the gallery.
    The new display_order is the current maximum plus one (1 on an empty gallery).
    """
    max_order_result = await db.execute(select(func.max(GalleryPhoto.display_order)))
    max_order = max_order_result.scalar() or 0

    photo = GalleryPhoto(
        filename=filename,
        photo_url=photo_url,
        caption=caption or "",
        display_order=max_order + 1,
    )
    db.add(photo)
    await db.commit()
    await db.refresh(photo)

    logger.info(f"Saved gallery photo ID {photo.id}, display_order={photo.display_order}")
    return photo


async def update_caption(db: AsyncSession, photo_id: int, caption: str) -> GalleryPhoto:
    """
    Raises:
        NotFoundError: If the photo does not exist
    """
    photo = await get_photo(db, photo_id)
    photo.caption = caption.strip() if caption else ""
    await db.commit()
    await db.refresh(photo)

    logger.info(f"Updated caption for gallery photo ID {photo_id}")
    return photo


async def delete_photo(db: AsyncSession, photo_id: int) -> GalleryPhoto:
    """
    Delete a photo record and return it, so the caller can remove the blob.

    Raises:
        NotFoundError: If the photo does not exist
    """
    photo = await get_photo(db, photo_id)
    await db.delete(photo)
    await db.commit()

    logger.info(f"Deleted gallery photo ID {photo_id}")
    return photo


async def reorder_photos(db: AsyncSession, orders: Iterable[Tuple[int, int]]) -> int:
    """
    Set display_order for each (photo_id, order) pair.

    Every id is checked before anything is written; the updates are then
    committed together.

    Returns:
        int: Number of photos updated

    Raises:
        NotFoundError: If any photo id does not exist
    """
    orders = list(orders)
    if not orders:
        return 0

    ids = [photo_id for photo_id, _ in orders]
    result = await db.execute(select(GalleryPhoto.id).where(GalleryPhoto.id.in_(ids)))
    missing = set(ids) - set(result.scalars().all())
    if missing:
        raise NotFoundError(f"Photos not found: {sorted(missing)}")

    for photo_id, order in orders:
        await db.execute(
            update(GalleryPhoto)
            .where(GalleryPhoto.id == photo_id)
            .values(display_order=order)
        )
    await db.commit()

    logger.info(f"Reordered {len(orders)} gallery photos")
    return len(orders)
