"""
Shared FastAPI dependencies: settings, blob store, sessions, admin gate and
rate limits. Components are read from app.state, where create_app puts them.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import logging

from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.database import get_db
from app.errors import AuthError, RateLimitError
from app.services.blob_store import BlobStore
from app.utils.rate_limit import get_client_identifier
from app.utils.session_cookie import read_session_id

logger = logging.getLogger(__name__)


@dataclass
class CurrentSession:
    sid: str
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        return bool(self.data.get("is_admin"))

    @property
    def username(self) -> Optional[str]:
        return self.data.get("username")


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def set_session_cookie(response: Response, settings: Settings, token: str):
    """Issue the session cookie; Secure and SameSite=None only in production."""
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_MAX_AGE_HOURS * 60 * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="none" if settings.is_production else "lax",
        path="/",
    )


def clear_session_cookie(response: Response, settings: Settings):
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="none" if settings.is_production else "lax",
    )


def read_request_sid(request: Request) -> Optional[str]:
    """Session id from the signed cookie, or None if absent or forged."""
    settings = request.app.state.settings
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        return None
    return read_session_id(token, settings.SESSION_SECRET)


async def get_current_session(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> Optional[CurrentSession]:
    """
    Load the session named by the request cookie.

    A live session has its expiry pushed back and its cookie re-issued, so
    the 24 hour limit counts from the last request.

    Returns:
        CurrentSession, or None for anonymous requests
    """
    sid = read_request_sid(request)
    if not sid:
        return None

    store = request.app.state.session_store
    data = await store.load(db, sid)
    if data is None:
        return None

    await store.touch(db, sid)
    settings = request.app.state.settings
    set_session_cookie(response, settings, request.cookies[settings.SESSION_COOKIE_NAME])
    return CurrentSession(sid=sid, data=data)


async def require_admin(
    session: Optional[CurrentSession] = Depends(get_current_session),
) -> CurrentSession:
    """
    FastAPI dependency gating admin routes.

    Raises:
        AuthError: 401 unless the session exists and is flagged admin
    """
    if session is None or not session.is_admin:
        raise AuthError()
    return session


def rate_limit(limiter_attr: str, message: str):
    """
    Build a dependency that checks the limiter stored at app.state.<limiter_attr>.

    Every call counts, successful or not.
    """
    async def check_rate_limit(request: Request):
        limiter = getattr(request.app.state, limiter_attr)
        client = get_client_identifier(request)
        if not limiter.allow(client):
            logger.warning(f"Rate limit '{limiter_attr}' exceeded for {client} on {request.url.path}")
            raise RateLimitError(message)

    return check_rate_limit


memory_submission_limit = rate_limit(
    "memory_limiter",
    "Too many requests. Please wait a minute before submitting again.",
)

admin_login_limit = rate_limit(
    "login_limiter",
    "Too many login attempts from this IP, please try again after 15 minutes.",
)
