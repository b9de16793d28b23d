"""
Persistence for guestbook memories.
"""
from typing import List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import NotFoundError
from app.models import Memory

logger = logging.getLogger(__name__)


async def list_memories(
    db: AsyncSession,
    limit: Optional[int] = None,
    offset: int = 0,
) -> List[Memory]:
    """
    Get memories newest first.

    Args:
        db: Database session
        limit: Maximum number of memories to return (all when None)
        offset: Number of memories to skip

    Returns:
        List[Memory]: Memories ordered by creation time descending
    """
    query = select(Memory).order_by(Memory.created_at.desc(), Memory.id.desc())
    if offset:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())


async def get_memory(db: AsyncSession, memory_id: int) -> Memory:
    result = await db.execute(select(Memory).where(Memory.id == memory_id))
    memory = result.scalar_one_or_none()
    if memory is None:
        raise NotFoundError("Memory not found")
    return memory


async def create_memory(
    db: AsyncSession,
    from_name: str,
    message: str,
    photo_url: Optional[str] = None,
) -> Memory:
    """Insert a memory; id and timestamp are assigned here."""
    memory = Memory(from_name=from_name, message=message, photo_url=photo_url)
    db.add(memory)
    await db.commit()
    await db.refresh(memory)

    logger.info(f"Saved memory ID {memory.id}")
    return memory


async def update_memory(
    db: AsyncSession,
    memory_id: int,
    from_name: Optional[str] = None,
    message: Optional[str] = None,
) -> Memory:
    """
    Edit a memory's name and/or message.
    Missing or blank values leave the stored field unchanged.

    Raises:
        NotFoundError: If the memory does not exist
    """
    memory = await get_memory(db, memory_id)

    if from_name and from_name.strip():
        memory.from_name = from_name.strip()
    if message and message.strip():
        memory.message = message.strip()

    await db.commit()
    await db.refresh(memory)

    logger.info(f"Updated memory ID {memory_id}")
    return memory


async def delete_memory(db: AsyncSession, memory_id: int) -> Memory:
    """
    Delete a memory and return the removed record, so the caller can clean
    up its photo.

    Raises:
        NotFoundError: If the memory does not exist
    """
    memory = await get_memory(db, memory_id)
    await db.delete(memory)
    await db.commit()

    logger.info(f"Deleted memory ID {memory_id}")
    return memory
