from datetime import datetime, timedelta, timezone
import jwt
from typing import Optional
from app.core_settings import get_settings

settings = get_settings()

TOKEN_TTL_MINUTES = 60 * 24 * 7


def create_access_token(user_id: int, role: str, expires_minutes: int = TOKEN_TTL_MINUTES) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def decode_access_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except jwt.PyJWTError:
        return None
