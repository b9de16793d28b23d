"""
Admin API routes: login/logout, gallery management and memory moderation.
Everything except login, logout and status requires an admin session.
"""
from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import asyncio
import logging
import os

from app.config import Settings
from app.database import get_db
from app.dependencies import (
    CurrentSession,
    admin_login_limit,
    clear_session_cookie,
    get_app_settings,
    get_blob_store,
    get_current_session,
    read_request_sid,
    require_admin,
    set_session_cookie,
)
from app.errors import AppError, AuthError, StorageError, ValidationError
from app.schemas import (
    AuthStatusResponse,
    CaptionUpdate,
    GalleryListResponse,
    GalleryPhotoResponse,
    GalleryPhotoResultResponse,
    LoginRequest,
    MemoryListResponse,
    MemoryResponse,
    MemoryUpdate,
    MemoryUpdatedResponse,
    MessageResponse,
    ReorderRequest,
)
from app.services import gallery as gallery_store
from app.services import memories as memory_store
from app.services.blob_store import BlobStore
from app.utils.auth import authenticate_admin
from app.utils.session_cookie import sign_session_id
from app.utils.uploads import has_upload, read_image_upload
from app.utils.validator import validate_memory_update

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


# Authentication

@router.post("/login", response_model=MessageResponse, dependencies=[Depends(admin_login_limit)])
async def login(
    credentials: LoginRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """
    Log in as admin and start a session.

    Raises:
        ValidationError: 400 if username or password is missing
        AuthError: 401 "Invalid credentials" for a wrong username or password
        RateLimitError: 429 after 5 attempts in 15 minutes from one address
    """
    if not credentials.username or not credentials.password:
        raise ValidationError("Username and password are required")

    # bcrypt is CPU bound; keep it off the event loop
    is_valid = await asyncio.to_thread(
        authenticate_admin,
        request.app.state.admin_credentials,
        credentials.username,
        credentials.password,
    )
    if not is_valid:
        logger.warning("Failed admin login attempt")
        raise AuthError("Invalid credentials")

    store = request.app.state.session_store
    try:
        previous_sid = read_request_sid(request)
        if previous_sid:
            await store.destroy(db, previous_sid)
        sid = await store.create(db, {"is_admin": True, "username": credentials.username})
    except Exception as e:
        logger.error(f"Login error: {str(e)}", exc_info=True)
        raise StorageError("Login failed") from e

    set_session_cookie(response, settings, sign_session_id(sid, settings.SESSION_SECRET))
    logger.info(f"Admin '{credentials.username}' logged in")
    return MessageResponse(message="Login successful")


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """Destroy the current session, if any, and clear the cookie."""
    sid = read_request_sid(request)
    if sid:
        await request.app.state.session_store.destroy(db, sid)
    clear_session_cookie(response, settings)
    return MessageResponse(message="Logged out")


@router.get("/status", response_model=AuthStatusResponse)
async def auth_status(session: Optional[CurrentSession] = Depends(get_current_session)):
    return AuthStatusResponse(isAuthenticated=bool(session and session.is_admin))


# Gallery management

@router.get("/gallery", response_model=GalleryListResponse)
async def get_admin_gallery(
    db: AsyncSession = Depends(get_db),
    session: CurrentSession = Depends(require_admin),
):
    try:
        photos = await gallery_store.list_photos(db)
    except Exception as e:
        logger.error(f"Error fetching admin gallery: {str(e)}", exc_info=True)
        raise StorageError("Failed to load gallery") from e

    return GalleryListResponse(photos=[GalleryPhotoResponse.model_validate(p) for p in photos])


@router.post("/gallery", response_model=GalleryPhotoResultResponse, status_code=status.HTTP_201_CREATED)
async def upload_gallery_photo(
    photo: Optional[UploadFile] = File(None),
    caption: str = Form(""),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_app_settings),
    session: CurrentSession = Depends(require_admin),
):
    """
    Upload a photo to the end of the gallery.

    Raises:
        ValidationError: 400 if no photo was sent
        UploadError: 400 if the photo is not an acceptable image
        StorageError: 500 if the upload or the database insert fails
    """
    if not has_upload(photo):
        raise ValidationError("No photo uploaded")

    content = await read_image_upload(photo, settings.MAX_UPLOAD_BYTES)
    uploaded = await blob_store.upload(content, photo.filename, "gallery")

    try:
        created = await gallery_store.create_photo(
            db,
            filename=os.path.basename(photo.filename),
            photo_url=uploaded["url"],
            caption=caption.strip(),
        )
    except Exception as e:
        logger.error(f"Error saving gallery photo: {str(e)}", exc_info=True)
        await blob_store.delete(uploaded["url"])
        raise StorageError("Failed to upload photo") from e

    return GalleryPhotoResultResponse(
        message="Photo added successfully",
        photo=GalleryPhotoResponse.model_validate(created),
    )


@router.put("/gallery/reorder", response_model=MessageResponse)
async def reorder_gallery(
    payload: ReorderRequest,
    db: AsyncSession = Depends(get_db),
    session: CurrentSession = Depends(require_admin),
):
    """
    Set the display order of gallery photos.

    Raises:
        NotFoundError: 404 if any photo id is unknown (nothing is changed)
    """
    try:
        count = await gallery_store.reorder_photos(db, [(item.id, item.order) for item in payload.photos])
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error reordering gallery: {str(e)}", exc_info=True)
        raise StorageError("Failed to reorder gallery") from e

    return MessageResponse(message=f"Successfully reordered {count} photos")


@router.put("/gallery/{photo_id}", response_model=GalleryPhotoResultResponse)
async def update_gallery_caption(
    photo_id: int,
    payload: CaptionUpdate,
    db: AsyncSession = Depends(get_db),
    session: CurrentSession = Depends(require_admin),
):
    try:
        photo = await gallery_store.update_caption(db, photo_id, payload.caption or "")
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error updating photo {photo_id}: {str(e)}", exc_info=True)
        raise StorageError("Failed to update photo") from e

    return GalleryPhotoResultResponse(
        message="Photo updated successfully",
        photo=GalleryPhotoResponse.model_validate(photo),
    )


@router.delete("/gallery/{photo_id}", response_model=MessageResponse)
async def delete_gallery_photo(
    photo_id: int,
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    session: CurrentSession = Depends(require_admin),
):
    """Delete a photo record, then its blob (blob failures are only logged)."""
    try:
        photo = await gallery_store.delete_photo(db, photo_id)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error deleting photo {photo_id}: {str(e)}", exc_info=True)
        raise StorageError("Failed to delete photo") from e

    await blob_store.delete(photo.photo_url)
    return MessageResponse(message="Photo deleted successfully")


# Memory moderation

@router.get("/memories", response_model=MemoryListResponse)
async def get_admin_memories(
    db: AsyncSession = Depends(get_db),
    session: CurrentSession = Depends(require_admin),
):
    try:
        memories = await memory_store.list_memories(db)
    except Exception as e:
        logger.error(f"Error fetching admin memories: {str(e)}", exc_info=True)
        raise StorageError("Failed to load memories") from e

    return MemoryListResponse(memories=[MemoryResponse.model_validate(m) for m in memories])


@router.put("/memories/{memory_id}", response_model=MemoryUpdatedResponse)
async def update_admin_memory(
    memory_id: int,
    payload: MemoryUpdate,
    db: AsyncSession = Depends(get_db),
    session: CurrentSession = Depends(require_admin),
):
    """
    Edit a memory's name and/or message; the timestamp is never changed.

    Raises:
        ValidationError: 400 if a supplied value is too long
        NotFoundError: 404 if the memory does not exist
    """
    validation = validate_memory_update(payload.from_name, payload.message)
    if not validation.valid:
        raise ValidationError("Validation failed", errors=validation.errors)

    try:
        memory = await memory_store.update_memory(
            db, memory_id, from_name=payload.from_name, message=payload.message
        )
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error updating memory {memory_id}: {str(e)}", exc_info=True)
        raise StorageError("Failed to update memory") from e

    return MemoryUpdatedResponse(memory=MemoryResponse.model_validate(memory))


@router.delete("/memories/{memory_id}", response_model=MessageResponse)
async def delete_admin_memory(
    memory_id: int,
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    session: CurrentSession = Depends(require_admin),
):
    """Delete a memory, then its photo blob if it had one."""
    try:
        memory = await memory_store.delete_memory(db, memory_id)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error deleting memory {memory_id}: {str(e)}", exc_info=True)
        raise StorageError("Failed to delete memory") from e

    if memory.photo_url:
        await blob_store.delete(memory.photo_url)
    return MessageResponse(message="Memory deleted successfully")
