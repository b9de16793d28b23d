"""
Password authentication utilities for admin access.
Uses bcrypt for secure password hashing.
"""
from dataclasses import dataclass
import hmac
import logging

import bcrypt

from app.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_USERNAME = "admin"
DEFAULT_ADMIN_PASSWORD = "changeme123"


@dataclass(frozen=True)
class AdminCredentials:
    username: str
    password_hash: str


def hash_password(password: str, rounds: int = 12) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password
        rounds: bcrypt cost factor

    Returns:
        Hashed password string
    """
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, hashed_password: str) -> bool:
    """
    Verify a password against a hashed password.

    Args:
        password: Plain text password to verify
        hashed_password: Hashed password to compare against

    Returns:
        True if password matches, False otherwise
    """
    try:
        return bcrypt.checkpw(
            password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )
    except ValueError:
        # Malformed hash
        return False


def load_admin_credentials(settings: Settings) -> AdminCredentials:
    """
    Resolve the admin credentials once at startup.

    A plaintext ADMIN_PASSWORD is hashed here; otherwise ADMIN_PASSWORD_HASH is
    used as-is. With neither set the default password is hashed. A warning is logged
    whenever the username or the password falls back to its default.
    """
    if settings.ADMIN_PASSWORD:
        password_hash = hash_password(settings.ADMIN_PASSWORD, settings.BCRYPT_ROUNDS)
    elif settings.ADMIN_PASSWORD_HASH:
        password_hash = settings.ADMIN_PASSWORD_HASH
    else:
        password_hash = hash_password(DEFAULT_ADMIN_PASSWORD, settings.BCRYPT_ROUNDS)

    username_unset = not settings.ADMIN_USERNAME or "ADMIN_USERNAME" not in settings.model_fields_set
    if username_unset or not (settings.ADMIN_PASSWORD or settings.ADMIN_PASSWORD_HASH):
        logger.warning(
            "Using default admin credentials! "
            "Set ADMIN_USERNAME and ADMIN_PASSWORD (or ADMIN_PASSWORD_HASH) in your .env file."
        )

    return AdminCredentials(username=settings.ADMIN_USERNAME or DEFAULT_ADMIN_USERNAME, password_hash=password_hash)


def authenticate_admin(credentials: AdminCredentials, username: str, password: str) -> bool:
    """
    Check a login attempt against the admin credentials.

    The password hash is always checked, even when the username is wrong, so
    both failure kinds take the same time.
    """
    username_ok = hmac.compare_digest(
        username.encode('utf-8'),
        credentials.username.encode('utf-8')
    )
    password_ok = verify_password(password, credentials.password_hash)
    return username_ok and password_ok
