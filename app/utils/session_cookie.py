"""
Signed session cookie helpers.
The cookie carries only the session id, signed with the session secret as a
JWT so a forged or tampered id is rejected before touching the database.
"""
from typing import Optional
from jose import JWTError, jwt

ALGORITHM = "HS256"


def sign_session_id(sid: str, secret: str) -> str:
    """
    Encode a session id into a signed cookie value.

    Args:
        sid: Server-side session id
        secret: Session secret from settings

    Returns:
        str: Encoded JWT
    """
    return jwt.encode({"sid": sid, "type": "session"}, secret, algorithm=ALGORITHM)


def read_session_id(token: str, secret: str) -> Optional[str]:
    """
    Decode a signed cookie value.

    Returns:
        The session id, or None if the signature or payload is invalid
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except JWTError:
        return None

    if payload.get("type") != "session":
        return None

    sid = payload.get("sid")
    return sid if isinstance(sid, str) else None
