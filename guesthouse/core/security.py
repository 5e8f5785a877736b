from datetime import datetime, timedelta, timezone

from jose import jwt
from passlib.context import CryptContext

from guesthouse.core.config import settings

# PBKDF2 avoids bcrypt backend/version issues and the 72-byte bcrypt input limit.
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
ALGO = "HS256"

# "type" claim values; each endpoint accepts exactly one of them.
ACCESS = "access"
REFRESH = "refresh"
DOCUMENT = "document"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def _encode(subject: str, token_type: str, lifetime: timedelta) -> str:
    payload = {"sub": subject, "type": token_type, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGO)


def create_access_token(user_id: str, expires_minutes: int | None = None) -> str:
    minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES if expires_minutes is None else expires_minutes
    return _encode(user_id, ACCESS, timedelta(minutes=minutes))


def create_refresh_token(user_id: str, expires_days: int | None = None) -> str:
    days = settings.REFRESH_TOKEN_EXPIRE_DAYS if expires_days is None else expires_days
    return _encode(user_id, REFRESH, timedelta(days=days))


def create_document_token(path: str, expires_minutes: int | None = None) -> str:
    """Short-lived token that lets the bearer download one private document."""
    minutes = settings.DOCUMENT_URL_EXPIRE_MINUTES if expires_minutes is None else expires_minutes
    return _encode(path, DOCUMENT, timedelta(minutes=minutes))


def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGO])
