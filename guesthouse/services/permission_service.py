"""Role -> permission matrix for the admin console.

Stored server-side as one row per (role, permission) grant so route guards and
the console read the same source.
"""
import uuid
from sqlalchemy.orm import Session
from guesthouse.models.permission import Permission

STAFF_ROLES = ("staff", "accountant", "manager", "owner")

PERMISSIONS = {
    "dashboard": "View dashboard overview and statistics",
    "bookings": "Create, edit, and manage bookings",
    "payments": "Access revenue and financial data",
    "rooms": "Manage rooms, blocks and property media",
    "reports": "View reports and analytics",
    "settings": "Configure property settings and manage users",
}

DEFAULT_MATRIX = {
    "dashboard": ["owner", "manager", "staff", "accountant"],
    "bookings": ["owner", "manager", "staff"],
    "payments": ["owner", "manager", "accountant"],
    "rooms": ["owner", "manager"],
    "reports": ["owner", "manager", "accountant"],
    "settings": ["owner"],
}


def get_matrix(db: Session) -> dict[str, list[str]]:
    rows = db.query(Permission).all()
    if not rows:
        return {k: list(v) for k, v in DEFAULT_MATRIX.items()}
    matrix: dict[str, list[str]] = {k: [] for k in PERMISSIONS}
    for r in rows:
        matrix.setdefault(r.permission_key, []).append(r.role)
    return {k: sorted(v) for k, v in matrix.items()}


def set_roles(db: Session, permission_key: str, roles: list[str]) -> list[str]:
    if permission_key not in PERMISSIONS:
        raise ValueError(f"unknown permission: {permission_key}")
    bad = [r for r in roles if r not in STAFF_ROLES]
    if bad:
        raise ValueError(f"invalid role: {bad[0]}")
    wanted = set(roles)
    # Owners can never lock themselves out.
    wanted.add("owner")
    db.query(Permission).filter(Permission.permission_key == permission_key).delete(synchronize_session=False)
    for role in sorted(wanted):
        db.add(Permission(id=str(uuid.uuid4()), role=role, permission_key=permission_key))
    return sorted(wanted)


def update_matrix(db: Session, updates: dict[str, list[str]]) -> dict[str, list[str]]:
    if not db.query(Permission).first():
        seed_defaults(db, commit=False)
    for key, roles in updates.items():
        set_roles(db, key, roles)
    db.commit()
    return get_matrix(db)


def seed_defaults(db: Session, commit: bool = True) -> int:
    added = 0
    for key, roles in DEFAULT_MATRIX.items():
        for role in roles:
            exists = db.query(Permission).filter(Permission.role == role, Permission.permission_key == key).first()
            if exists:
                continue
            db.add(Permission(id=str(uuid.uuid4()), role=role, permission_key=key))
            added += 1
    if commit:
        db.commit()
    else:
        db.flush()
    return added


def has_permission(db: Session, role: str, permission_key: str) -> bool:
    if role == "owner":
        return True
    if role not in STAFF_ROLES:
        return False
    return role in get_matrix(db).get(permission_key, [])
