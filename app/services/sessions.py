"""
Database-backed session store.
Sessions survive server restarts and expire after a period of inactivity.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional
import logging
import secrets

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import SessionRecord

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """
    Persists session data in the `session` table.

    The table is created on first use, so the store works against a database
    that was never migrated.
    """

    def __init__(self, max_age: timedelta, clock: Callable[[], datetime] = _utcnow):
        self.max_age = max_age
        self._clock = clock
        self._table_ready = False

    async def _ensure_table(self, db: AsyncSession):
        if self._table_ready:
            return

        def create(sync_session):
            SessionRecord.__table__.create(sync_session.connection(), checkfirst=True)

        await db.run_sync(create)
        self._table_ready = True

    async def create(self, db: AsyncSession, data: Dict[str, Any]) -> str:
        """Store new session data and return its id."""
        await self._ensure_table(db)
        sid = secrets.token_urlsafe(32)
        db.add(SessionRecord(sid=sid, data=dict(data), expires_at=self._clock() + self.max_age))
        await db.commit()
        return sid

    async def load(self, db: AsyncSession, sid: str) -> Optional[Dict[str, Any]]:
        """
        Load session data.

        Returns:
            The stored data, or None when the session is unknown or expired.
            Expired rows are removed.
        """
        await self._ensure_table(db)
        result = await db.execute(
            select(SessionRecord).where(
                SessionRecord.sid == sid,
                SessionRecord.expires_at > self._clock(),
            )
        )
        record = result.scalar_one_or_none()
        if record is None:
            # Unknown or expired; drop any stale row
            await self.destroy(db, sid)
            return None

        return dict(record.data or {})

    async def touch(self, db: AsyncSession, sid: str):
        """Push the expiry back by max_age (sliding expiration)."""
        await self._ensure_table(db)
        await db.execute(
            update(SessionRecord)
            .where(SessionRecord.sid == sid)
            .values(expires_at=self._clock() + self.max_age)
        )
        await db.commit()

    async def destroy(self, db: AsyncSession, sid: str):
        await self._ensure_table(db)
        await db.execute(delete(SessionRecord).where(SessionRecord.sid == sid))
        await db.commit()

    async def prune_expired(self, db: AsyncSession) -> int:
        """Delete every expired session; returns how many were removed."""
        await self._ensure_table(db)
        result = await db.execute(
            delete(SessionRecord).where(SessionRecord.expires_at <= self._clock())
        )
        await db.commit()
        if result.rowcount:
            logger.info(f"Pruned {result.rowcount} expired sessions")
        return result.rowcount or 0
