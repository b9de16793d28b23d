"""
Rate limiting utilities for API endpoints.
Moving-window limiters keyed by client address, used to throttle memory
submissions and admin login attempts.
"""
from typing import Optional, Protocol
import logging

from fastapi import Request
from limits import RateLimitItemPerSecond
from limits.storage import storage_from_string
from limits.strategies import MovingWindowRateLimiter
from slowapi.util import get_remote_address

logger = logging.getLogger(__name__)


class RateLimiter(Protocol):
    def allow(self, key: str) -> bool:
        ...


class StorageRateLimiter:
    """
    Moving-window limiter backed by a `limits` storage backend.

    memory:// keeps the hit log in this process and expires idle keys on its
    own. Use a shared backend (e.g. redis://) to enforce one limit across
    processes. Rejected requests are not recorded.
    """

    def __init__(self, storage_uri: str, max_requests: int, window_seconds: int, namespace: str):
        self._limiter = MovingWindowRateLimiter(storage_from_string(storage_uri))
        self._item = RateLimitItemPerSecond(max_requests, window_seconds)
        self._namespace = namespace

    def allow(self, key: str) -> bool:
        return self._limiter.hit(self._item, self._namespace, key)


def build_rate_limiter(
    storage_uri: str,
    max_requests: int,
    window_seconds: int,
    namespace: str,
) -> RateLimiter:
    logger.info(
        f"Rate limit '{namespace}': {max_requests} per {window_seconds}s "
        f"({storage_uri.split('://', 1)[0]} storage)"
    )
    return StorageRateLimiter(storage_uri, max_requests, window_seconds, namespace)


def get_client_identifier(request: Request, trust_proxy: Optional[bool] = None) -> str:
    """
    Get client identifier for rate limiting.
    Uses the forwarded IP when running behind a trusted proxy, otherwise the
    remote address.

    Args:
        request: FastAPI request object
        trust_proxy: Honour X-Forwarded-For; defaults to production mode

    Returns:
        str: Client identifier (IP address)
    """
    if trust_proxy is None:
        trust_proxy = request.app.state.settings.is_production

    if trust_proxy:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            # First IP in chain is the original client
            return forwarded.split(",")[0].strip()

    return get_remote_address(request)
