import uuid
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from guesthouse.db.session import get_db
from guesthouse.schemas.auth import LoginRequest, RegisterRequest, TokenPair
from guesthouse.models.user import User
from guesthouse.core.logging import get_logger
from guesthouse.core.security import REFRESH, verify_password, hash_password, create_access_token, create_refresh_token, decode_token
from guesthouse.api.deps import get_current_user
from guesthouse.services.permission_service import STAFF_ROLES, get_matrix

router = APIRouter(tags=["auth"])
logger = get_logger(__name__)

@router.post("/auth/login", response_model=TokenPair)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == body.email.strip().lower()).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return TokenPair(
        access_token=create_access_token(user.id),
        refresh_token=create_refresh_token(user.id),
    )


@router.post("/auth/register", response_model=TokenPair)
def register(body: RegisterRequest, db: Session = Depends(get_db)):
    email = body.email.strip().lower()
    if not email or "@" not in email:
        raise HTTPException(status_code=400, detail="Valid email required")
    if len(body.password) < 8:
        raise HTTPException(status_code=400, detail="Password too short")
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=409, detail="email already exists")
    user = User(
        id=str(uuid.uuid4()),
        email=email,
        full_name=body.fullName.strip(),
        phone=body.phone.strip(),
        role="customer",
        password_hash=hash_password(body.password),
        is_active=True,
    )
    db.add(user)
    db.commit()
    logger.info("user_registered", user_id=user.id)
    return TokenPair(
        access_token=create_access_token(user.id),
        refresh_token=create_refresh_token(user.id),
    )


@router.post("/auth/refresh", response_model=TokenPair)
def refresh(refresh_token: str, db: Session = Depends(get_db)):
    try:
        payload = decode_token(refresh_token)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid refresh token")
    if payload.get("type") != REFRESH:
        raise HTTPException(status_code=401, detail="Invalid refresh token")
    user = db.get(User, payload.get("sub"))
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return TokenPair(
        access_token=create_access_token(user.id),
        refresh_token=create_refresh_token(user.id),
    )

@router.get("/auth/me")
def me(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    """Current user, plus the permission keys the admin console should show."""
    permissions = []
    if me.role in STAFF_ROLES:
        permissions = sorted(k for k, roles in get_matrix(db).items() if me.role == "owner" or me.role in roles)
    return {
        "id": me.id,
        "email": me.email,
        "fullName": me.full_name or "",
        "phone": me.phone or "",
        "role": me.role,
        "permissions": permissions,
    }


@router.post("/auth/change-password")
def change_password(oldPassword: str, newPassword: str,
                    db: Session = Depends(get_db),
                    me: User = Depends(get_current_user)):
    if not verify_password(oldPassword, me.password_hash):
        raise HTTPException(status_code=400, detail="Old password incorrect")
    if len(newPassword) < 8:
        raise HTTPException(status_code=400, detail="Password too short")
    me.password_hash = hash_password(newPassword)
    db.commit()
    return {"ok": True}
