from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from pydantic import BaseModel

from .config import Settings


class SessionData(BaseModel):
    sub: str


def create_session_token(settings: Settings, user_id: str, ttl_minutes: Optional[int] = None) -> str:
    now = datetime.now(timezone.utc)
    ttl = ttl_minutes if ttl_minutes is not None else settings.SESSION_TTL_MINUTES
    payload = {"sub": user_id, "iat": int(now.timestamp()), "exp": int((now + timedelta(minutes=ttl)).timestamp())}
    return jwt.encode(payload, settings.SESSION_SECRET.get_secret_value(), algorithm=settings.SESSION_ALGORITHM)


def decode_session_token(settings: Settings, token: Optional[str]) -> Optional[SessionData]:
    """Return the session for a valid user session token, None otherwise."""
    if not token:
        return None
    try:
        payload = jwt.decode(
            token,
            settings.SESSION_SECRET.get_secret_value(),
            algorithms=[settings.SESSION_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.PyJWTError:
        return None
    return SessionData(sub=str(payload["sub"]))
