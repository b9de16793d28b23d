"""
SQLAlchemy models for the application.
All database models inherit from Base (declarative base).
"""
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Text, DateTime, JSON
from app.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Memory(Base):
    """
    Guestbook entry.
    created_at is assigned on insert and never updated.
    """
    __tablename__ = "memories"

    id = Column(Integer, primary_key=True, index=True)
    from_name = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    photo_url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)


class GalleryPhoto(Base):
    """
    Gallery photo model.
    display_order is the ascending sort key shown to visitors.
    """
    __tablename__ = "gallery"

    id = Column(Integer, primary_key=True, index=True)
    filename = Column(String(255), nullable=False)
    photo_url = Column(Text, nullable=False)
    caption = Column(Text, nullable=False, default="")
    display_order = Column(Integer, nullable=False, default=0, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class SessionRecord(Base):
    """Server-side session state keyed by the id carried in the session cookie."""
    __tablename__ = "session"

    sid = Column(String(64), primary_key=True)
    data = Column(JSON, nullable=False, default=dict)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
