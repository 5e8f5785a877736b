from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from guesthouse.db.session import get_db
from guesthouse.core.security import ACCESS, decode_token
from guesthouse.models.user import User
from guesthouse.services.permission_service import STAFF_ROLES, has_permission

bearer = HTTPBearer(auto_error=False)

def _user_from_token(token: str, db: Session) -> User:
    try:
        payload = decode_token(token)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid token")
    if payload.get("type") != ACCESS:
        raise HTTPException(status_code=401, detail="Invalid token")
    user = db.get(User, payload.get("sub"))
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return user

def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    if not creds:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return _user_from_token(creds.credentials, db)

def get_optional_user(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> User | None:
    if not creds:
        return None
    return _user_from_token(creds.credentials, db)

def require_roles(*roles: str):
    def _guard(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail="Forbidden")
        return user
    return _guard

def require_permission(permission_key: str):
    """Staff guard backed by the role/permission table."""
    def _guard(user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> User:
        if user.role not in STAFF_ROLES or not has_permission(db, user.role, permission_key):
            raise HTTPException(status_code=403, detail="Forbidden")
        return user
    return _guard
