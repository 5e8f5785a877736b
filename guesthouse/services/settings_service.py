import json
from sqlalchemy.orm import Session
from guesthouse.core.config import settings
from guesthouse.core.security import hash_password, verify_password
from guesthouse.models.setting import Setting

PROPERTY_KEY = "PROPERTY"
PERMISSION_CODE_KEY = "STAFF_PERMISSION_CODE"

PROPERTY_FIELDS = ("name", "address", "phone", "email", "gstin", "checkInTime", "checkOutTime", "upiId")


def default_property() -> dict:
    return {
        "name": settings.PROPERTY_NAME,
        "address": "",
        "phone": "",
        "email": "",
        "gstin": settings.PROPERTY_GSTIN,
        "checkInTime": "14:00",
        "checkOutTime": "11:00",
        "upiId": "",
    }


def get_property_settings(db: Session) -> dict:
    data = default_property()
    s = db.get(Setting, PROPERTY_KEY)
    if s and s.str_value:
        try:
            stored = json.loads(s.str_value)
        except (json.JSONDecodeError, TypeError):
            stored = {}
        data.update({k: v for k, v in stored.items() if k in PROPERTY_FIELDS})
    return data


def set_property_settings(db: Session, values: dict) -> dict:
    data = get_property_settings(db)
    data.update({k: v for k, v in values.items() if k in PROPERTY_FIELDS and v is not None})
    s = db.get(Setting, PROPERTY_KEY)
    if not s:
        s = Setting(key=PROPERTY_KEY, int_value=None, str_value=json.dumps(data))
        db.add(s)
    else:
        s.str_value = json.dumps(data)
    db.commit()
    return data


def set_permission_code(db: Session, code: str) -> None:
    """Shared code that stands in for an employee ID at checkout; stored hashed."""
    if not code or len(code) < 4:
        raise ValueError("permission code must be at least 4 characters")
    s = db.get(Setting, PERMISSION_CODE_KEY)
    if not s:
        s = Setting(key=PERMISSION_CODE_KEY, int_value=None, str_value=hash_password(code))
        db.add(s)
    else:
        s.str_value = hash_password(code)
    db.commit()


def verify_permission_code(db: Session, code: str) -> bool:
    s = db.get(Setting, PERMISSION_CODE_KEY)
    if not s or not s.str_value or not code:
        return False
    return verify_password(code, s.str_value)
