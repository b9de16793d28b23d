"""
Pydantic schemas for request and response data validation.
Defines data structures for API endpoints with automatic validation and serialization.
"""
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from datetime import datetime, timezone
from typing import Optional, List


def ensure_utc(value: datetime) -> datetime:
    """SQLite returns naive datetimes; stored values are always UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class MemoryResponse(BaseModel):
    """
    A guestbook entry as the front-end expects it.
    Serialized as {id, from, message, photo, timestamp}.
    """
    id: int
    from_name: str = Field(validation_alias=AliasChoices("from_name", "from"), serialization_alias="from")
    message: str
    photo: Optional[str] = Field(default=None, validation_alias=AliasChoices("photo_url", "photo"))
    timestamp: datetime = Field(validation_alias=AliasChoices("created_at", "timestamp"))

    model_config = ConfigDict(from_attributes=True)

    @field_validator("timestamp")
    @classmethod
    def as_utc(cls, v):
        return ensure_utc(v)


class MemoryListResponse(BaseModel):
    """Response for GET /api/memories and GET /api/admin/memories."""
    success: bool = True
    memories: List[MemoryResponse]


class MemoryCreatedResponse(BaseModel):
    """Response for POST /api/memories."""
    success: bool = True
    message: str = "Memory shared successfully"
    memory: MemoryResponse


class MemoryUpdate(BaseModel):
    """
    Request schema for admin memory edits.
    Used by PUT /api/admin/memories/{id}; omitted fields keep their value.
    """
    from_name: Optional[str] = Field(default=None, validation_alias="from")
    message: Optional[str] = None


class MemoryUpdatedResponse(BaseModel):
    success: bool = True
    message: str = "Memory updated successfully"
    memory: MemoryResponse


class GalleryPhotoResponse(BaseModel):
    """
    Response schema for gallery photo data.
    Used by the public and admin gallery endpoints.
    """
    id: int
    filename: str
    photo_url: str
    caption: str = ""
    order: int = Field(validation_alias=AliasChoices("display_order", "order"))
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("caption", mode="before")
    @classmethod
    def empty_caption(cls, v):
        return v or ""

    @field_validator("created_at")
    @classmethod
    def as_utc(cls, v):
        return ensure_utc(v)


class GalleryListResponse(BaseModel):
    success: bool = True
    photos: List[GalleryPhotoResponse]


class GalleryPhotoResultResponse(BaseModel):
    """Response for gallery upload and caption edits."""
    success: bool = True
    message: str
    photo: GalleryPhotoResponse


class CaptionUpdate(BaseModel):
    """
    Request schema for updating gallery photo captions.
    Used by PUT /api/admin/gallery/{id}.
    """
    caption: Optional[str] = None


class ReorderItem(BaseModel):
    id: int
    order: int


class ReorderRequest(BaseModel):
    """
    Request schema for reordering gallery photos.
    Used by PUT /api/admin/gallery/reorder.
    """
    photos: List[ReorderItem]

    @field_validator("photos")
    @classmethod
    def validate_unique_ids(cls, v):
        ids = [item.id for item in v]
        if len(ids) != len(set(ids)):
            raise ValueError("Duplicate photo IDs are not allowed")
        return v


class LoginRequest(BaseModel):
    """Request schema for POST /api/admin/login."""
    username: Optional[str] = None
    password: Optional[str] = None


class AuthStatusResponse(BaseModel):
    isAuthenticated: bool


class MessageResponse(BaseModel):
    """Plain acknowledgement used by login, logout, delete and reorder."""
    success: bool = True
    message: str
