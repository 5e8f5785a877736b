import uuid
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import func

from guesthouse.db.session import get_db
from guesthouse.api.deps import require_permission, require_roles
from guesthouse.api.v1.routes.bookings import to_booking_request
from guesthouse.core.logging import get_logger
from guesthouse.core.security import hash_password
from guesthouse.models.user import User
from guesthouse.models.booking import Booking
from guesthouse.models.booking_item import BookingItem
from guesthouse.models.payment import Payment
from guesthouse.schemas.admin import (
    AdminBookingCreate,
    BookingStatusUpdate,
    ItemStatusUpdate,
    PaymentDecision,
    PermissionCodeSet,
    PermissionsUpdate,
    PropertySettingsIn,
    RoomBlockIn,
    SignedUrlRequest,
)
from guesthouse.schemas.room import AvailabilityQuery, RoomIn, RoomPatch
from guesthouse.services.admin_booking_service import create_offline_booking
from guesthouse.services.audit_service import audit_out, list_audit_logs, log_audit
from guesthouse.services.availability_service import RESERVING_STATUSES, availability_payload, compute_availability
from guesthouse.services.booking_service import (
    BookingValidationError,
    RoomUnavailableError,
    booking_out,
    expire_pending_bookings,
    update_booking_status,
    update_item_status,
)
from guesthouse.services.catalog_service import create_room, delete_room, list_rooms, room_out, update_room
from guesthouse.services.document_service import DocumentError, signed_url
from guesthouse.services.payment_service import payment_out, verify_payment
from guesthouse.services.permission_service import PERMISSIONS, STAFF_ROLES, get_matrix, update_matrix
from guesthouse.services.room_block_service import block_out, create_block, delete_block, list_blocks
from guesthouse.services.settings_service import get_property_settings, set_permission_code, set_property_settings

router = APIRouter(tags=["admin"])
logger = get_logger(__name__)

USER_ROLES = ("customer",) + STAFF_ROLES


# -------------------------
# BOOKINGS
# -------------------------
@router.get("/admin/bookings")
def admin_list_bookings(status: str = "", paymentStatus: str = "", q: str = "", limit: int = 200, offset: int = 0,
                        db: Session = Depends(get_db), me: User = Depends(require_permission("bookings"))):
    query = db.query(Booking)
    if status:
        query = query.filter(Booking.status == status)
    if paymentStatus:
        query = query.filter(Booking.payment_status == paymentStatus)
    if q:
        ql = f"%{q.lower()}%"
        query = query.filter(
            func.lower(Booking.booking_number).like(ql)
            | func.lower(Booking.guest_name).like(ql)
            | func.lower(Booking.guest_email).like(ql)
            | Booking.guest_phone.like(ql)
        )
    total = query.count()
    items = query.order_by(Booking.created_at.desc()).limit(min(max(limit, 1), 1000)).offset(max(offset, 0)).all()
    return {"total": total, "items": [booking_out(db, b) for b in items]}


@router.post("/admin/bookings")
def admin_create_booking(body: AdminBookingCreate, db: Session = Depends(get_db),
                         me: User = Depends(require_permission("bookings"))):
    if not body.email:
        raise HTTPException(status_code=400, detail="Missing guest details")
    try:
        booking = create_offline_booking(db, to_booking_request(body), me,
                                         special_discount=body.special_discount,
                                         payment_method=body.payment_method)
    except RoomUnavailableError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except (BookingValidationError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "booking_ids": [booking.id], "booking": booking_out(db, booking)}


@router.get("/admin/bookings/{booking_id}")
def admin_booking_detail(booking_id: str, db: Session = Depends(get_db),
                         me: User = Depends(require_permission("bookings"))):
    b = db.get(Booking, booking_id)
    if not b:
        raise HTTPException(status_code=404, detail="Not found")
    out = booking_out(db, b)
    out["documents"] = {"govtId": b.govt_id_path, "bankId": b.bank_id_path, "guestId": b.guest_id_path}
    out["identity"] = {
        "idType": b.id_type, "idNumber": b.id_number, "bankIdNumber": b.bank_id_number,
        "guestIdNumber": b.guest_id_number, "guestRelation": b.guest_relation,
        "address": b.address, "city": b.city, "state": b.state, "pincode": b.pincode,
    }
    pays = db.query(Payment).filter(Payment.booking_id == b.id).order_by(Payment.created_at.desc()).all()
    out["payments"] = [payment_out(p) for p in pays]
    out["audit"] = [audit_out(a) for a in list_audit_logs(db, entity_type="booking", entity_id=b.id)]
    return out


@router.patch("/admin/bookings/{booking_id}")
def admin_update_booking(booking_id: str, body: BookingStatusUpdate, db: Session = Depends(get_db),
                         me: User = Depends(require_permission("bookings"))):
    b = db.get(Booking, booking_id)
    if not b:
        raise HTTPException(status_code=404, detail="Not found")
    before = {"status": b.status, "paymentStatus": b.payment_status}
    try:
        log_audit(db, me.id, "booking.status_update", "booking", b.id,
                  {"before": before, "status": body.status, "paymentStatus": body.paymentStatus})
        update_booking_status(db, b, status=body.status, payment_status=body.paymentStatus)
    except BookingValidationError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    return booking_out(db, b)


@router.patch("/admin/bookings/{booking_id}/items/{item_id}")
def admin_update_item(booking_id: str, item_id: str, body: ItemStatusUpdate, db: Session = Depends(get_db),
                      me: User = Depends(require_permission("bookings"))):
    item = db.get(BookingItem, item_id)
    if not item or item.booking_id != booking_id:
        raise HTTPException(status_code=404, detail="Not found")
    try:
        log_audit(db, me.id, "booking_item.status_update", "booking", booking_id,
                  {"itemId": item.id, "status": body.status})
        update_item_status(db, item, body.status)
    except BookingValidationError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    return {"ok": True, "itemId": item.id, "status": item.status}


@router.post("/admin/bookings/{booking_id}/verify-payment")
def admin_verify_payment(booking_id: str, body: PaymentDecision, db: Session = Depends(get_db),
                         me: User = Depends(require_permission("payments"))):
    b = db.get(Booking, booking_id)
    if not b:
        raise HTTPException(status_code=404, detail="Not found")
    verify_payment(db, b, me, approve=body.approve, note=body.note)
    return {"ok": True, "status": b.status, "paymentStatus": b.payment_status}


@router.get("/admin/payments")
def admin_list_payments(status: str = "", limit: int = 200, db: Session = Depends(get_db),
                        me: User = Depends(require_permission("payments"))):
    query = db.query(Payment)
    if status:
        query = query.filter(Payment.status == status)
    return [payment_out(p) for p in query.order_by(Payment.created_at.desc()).limit(min(max(limit, 1), 1000)).all()]


@router.post("/admin/clear-expired-bookings")
def admin_clear_expired(db: Session = Depends(get_db), me: User = Depends(require_permission("bookings"))):
    count = expire_pending_bookings(db)
    return {"success": True, "expired": count}


# -------------------------
# ROOMS, AVAILABILITY, BLOCKS
# -------------------------
@router.get("/admin/rooms")
def admin_list_rooms(db: Session = Depends(get_db), me: User = Depends(require_permission("dashboard"))):
    return [room_out(r) for r in list_rooms(db, include_hidden=True)]


@router.post("/admin/rooms")
def admin_create_room(body: RoomIn, db: Session = Depends(get_db), me: User = Depends(require_permission("rooms"))):
    try:
        room = create_room(db, body.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    log_audit(db, me.id, "room.create", "room", room.id, {"roomNumber": room.room_number})
    db.commit()
    return room_out(room)


@router.patch("/admin/rooms/{room_id}")
def admin_update_room(room_id: str, body: RoomPatch, db: Session = Depends(get_db),
                      me: User = Depends(require_permission("rooms"))):
    data = body.model_dump(exclude_unset=True)
    try:
        room = update_room(db, room_id, data)
    except LookupError:
        raise HTTPException(status_code=404, detail="Not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    log_audit(db, me.id, "room.update", "room", room.id, data)
    db.commit()
    return room_out(room)


@router.delete("/admin/rooms/{room_id}")
def admin_delete_room(room_id: str, db: Session = Depends(get_db), me: User = Depends(require_permission("rooms"))):
    if db.query(BookingItem).filter(BookingItem.room_id == room_id).first():
        raise HTTPException(status_code=409, detail="Room has bookings; deactivate it instead")
    try:
        delete_room(db, room_id)
    except LookupError:
        raise HTTPException(status_code=404, detail="Not found")
    log_audit(db, me.id, "room.delete", "room", room_id, {})
    db.commit()
    return {"ok": True}


@router.post("/admin/rooms/availability")
def admin_availability(body: AvailabilityQuery, db: Session = Depends(get_db),
                       me: User = Depends(require_permission("bookings"))):
    """Desk view: unpaid holds count as taken, unlike the public search."""
    if not body.check_in or not body.check_out:
        raise HTTPException(status_code=400, detail="check_in and check_out are required")
    result = compute_availability(db, body.check_in, body.check_out, room_type=body.room_type,
                                  statuses=RESERVING_STATUSES)
    out = availability_payload(result)
    out["rooms"] = [room_out(r) for r in result.rooms]
    return out


@router.get("/admin/room-blocks")
def admin_list_blocks(roomId: str = "", db: Session = Depends(get_db), me: User = Depends(require_permission("rooms"))):
    return [block_out(b) for b in list_blocks(db, room_id=roomId or None)]


@router.post("/admin/room-blocks")
def admin_create_block(body: RoomBlockIn, db: Session = Depends(get_db), me: User = Depends(require_permission("rooms"))):
    try:
        block = create_block(db, room_id=body.room_id, start_date=body.start_date, end_date=body.end_date,
                             reason=body.reason, notes=body.notes, created_by=me.id)
    except LookupError:
        raise HTTPException(status_code=404, detail="Room not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    log_audit(db, me.id, "room_block.create", "room_block", block.id, block_out(block))
    db.commit()
    return block_out(block)


@router.delete("/admin/room-blocks/{block_id}")
def admin_delete_block(block_id: str, db: Session = Depends(get_db), me: User = Depends(require_permission("rooms"))):
    try:
        delete_block(db, block_id)
    except LookupError:
        raise HTTPException(status_code=404, detail="Not found")
    log_audit(db, me.id, "room_block.delete", "room_block", block_id, {})
    db.commit()
    return {"ok": True}


# -------------------------
# DOCUMENTS
# -------------------------
@router.post("/admin/documents/signed-url")
def admin_signed_url(body: SignedUrlRequest, me: User = Depends(require_permission("bookings"))):
    try:
        return {"url": signed_url(body.path)}
    except DocumentError as e:
        raise HTTPException(status_code=400, detail=str(e))


# -------------------------
# USERS, PERMISSIONS, SETTINGS
# -------------------------
@router.get("/admin/users")
def list_users(role: str | None = None, q: str | None = None, limit: int = 50, offset: int = 0,
               db: Session = Depends(get_db),
               me: User = Depends(require_permission("settings"))):
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    if q:
        ql = f"%{q.lower()}%"
        query = query.filter(func.lower(User.email).like(ql) | func.lower(User.full_name).like(ql))
    total = query.count()
    users = query.order_by(User.created_at.desc()).limit(min(limit, 200)).offset(max(offset, 0)).all()
    return {
        "total": total,
        "items": [{"id": u.id, "email": u.email, "fullName": u.full_name, "phone": u.phone, "role": u.role,
                   "isActive": u.is_active, "createdAt": u.created_at.isoformat()} for u in users]
    }

@router.post("/admin/users")
def create_user(email: str, fullName: str = "", role: str = "staff", tempPassword: str | None = None,
                db: Session = Depends(get_db),
                me: User = Depends(require_permission("settings"))):
    email_l = email.strip().lower()
    if not email_l:
        raise HTTPException(status_code=400, detail="email required")
    if db.query(User).filter(User.email == email_l).first():
        raise HTTPException(status_code=409, detail="email already exists")
    if role not in USER_ROLES:
        raise HTTPException(status_code=400, detail="invalid role")
    if role == "owner" and me.role != "owner":
        raise HTTPException(status_code=403, detail="Only owners can create owners")
    pw = tempPassword or (uuid.uuid4().hex[:10] + "A1!")
    u = User(
        id=str(uuid.uuid4()),
        email=email_l,
        full_name=fullName or "",
        role=role,
        password_hash=hash_password(pw),
        is_active=True,
    )
    db.add(u)
    log_audit(db, me.id, "user.create", "user", u.id, {"email": u.email, "role": role})
    db.commit()
    return {"ok": True, "id": u.id, "email": u.email, "tempPassword": pw}

@router.patch("/admin/users/{user_id}")
def update_user(user_id: str, fullName: str | None = None, role: str | None = None, isActive: bool | None = None,
                db: Session = Depends(get_db),
                me: User = Depends(require_permission("settings"))):
    u = db.get(User, user_id)
    if not u:
        raise HTTPException(status_code=404, detail="not found")
    if fullName is not None:
        u.full_name = fullName
    if role is not None:
        if role not in USER_ROLES:
            raise HTTPException(status_code=400, detail="invalid role")
        if "owner" in (role, u.role) and me.role != "owner":
            raise HTTPException(status_code=403, detail="Only owners can change owners")
        u.role = role
    if isActive is not None:
        u.is_active = bool(isActive)
    log_audit(db, me.id, "user.update", "user", u.id, {"role": u.role, "isActive": u.is_active})
    db.commit()
    return {"ok": True}


@router.get("/admin/permissions")
def admin_get_permissions(db: Session = Depends(get_db), me: User = Depends(require_roles("owner"))):
    matrix = get_matrix(db)
    return {
        "success": True,
        "permissions": [
            {"key": key, "description": PERMISSIONS.get(key, ""), "roles": matrix.get(key, [])}
            for key in PERMISSIONS
        ],
    }


@router.put("/admin/permissions")
def admin_update_permissions(body: PermissionsUpdate, db: Session = Depends(get_db),
                             me: User = Depends(require_roles("owner"))):
    try:
        matrix = update_matrix(db, body.permissions)
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    log_audit(db, me.id, "permissions.update", "permission", "matrix", body.permissions)
    db.commit()
    logger.info("permissions_updated", actor=me.email, keys=sorted(body.permissions))
    return {"success": True, "permissions": matrix}


@router.get("/admin/settings")
def admin_get_settings(db: Session = Depends(get_db), me: User = Depends(require_permission("settings"))):
    return get_property_settings(db)


@router.put("/admin/settings")
def admin_update_settings(body: PropertySettingsIn, db: Session = Depends(get_db),
                          me: User = Depends(require_permission("settings"))):
    data = set_property_settings(db, body.model_dump(exclude_unset=True))
    log_audit(db, me.id, "settings.update", "setting", "PROPERTY", body.model_dump(exclude_unset=True))
    db.commit()
    return data


@router.post("/admin/settings/permission-code")
def admin_set_permission_code(body: PermissionCodeSet, db: Session = Depends(get_db),
                              me: User = Depends(require_permission("settings"))):
    try:
        set_permission_code(db, body.code)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    log_audit(db, me.id, "settings.permission_code", "setting", "STAFF_PERMISSION_CODE", {})
    db.commit()
    return {"ok": True}


@router.get("/admin/audit-logs")
def admin_audit_logs(entityType: str = "", entityId: str = "", limit: int = 100, offset: int = 0,
                     db: Session = Depends(get_db), me: User = Depends(require_permission("settings"))):
    return [audit_out(a) for a in list_audit_logs(db, entityType or None, entityId or None, limit, offset)]
