from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import FileResponse, Response
from sqlalchemy.orm import Session
from guesthouse.api.deps import get_current_user
from guesthouse.db.session import get_db
from guesthouse.models.booking import Booking
from guesthouse.models.user import User
from guesthouse.schemas.booking import BookingCreate, PaymentSubmit, PermissionCodeIn
from guesthouse.services.booking_service import (
    BookingLine,
    BookingRequest,
    BookingValidationError,
    RoomUnavailableError,
    booking_out,
    create_booking,
)
from guesthouse.services.document_service import DocumentError, resolve_document_token, store_document
from guesthouse.services.invoice_service import render_invoice_pdf_bytes
from guesthouse.services.payment_service import PaymentError, payment_out, submit_manual_payment
from guesthouse.services.permission_service import STAFF_ROLES
from guesthouse.services.settings_service import get_property_settings, verify_permission_code

router = APIRouter(tags=["bookings"])


def to_booking_request(body: BookingCreate) -> BookingRequest:
    return BookingRequest(
        check_in=body.check_in,
        check_out=body.check_out,
        lines=[BookingLine(room_id=line.room_id, quantity=line.quantity) for line in body.bookings],
        guest_name=body.guest_name,
        guest_email=body.email,
        guest_phone=body.phone,
        address=body.address,
        city=body.city,
        state=body.state,
        pincode=body.pincode,
        id_type=body.id_type,
        id_number=body.id_number,
        booking_for=body.booking_for,
        guest_relation=body.guest_relation,
        guest_id_number=body.guest_id_number,
        bank_id_number=body.bank_id_number,
        govt_id_path=body.govt_id_path,
        bank_id_path=body.bank_id_path,
        guest_id_path=body.guest_id_path,
        guests=[g.model_dump() for g in body.guest_details],
        num_guests=body.num_guests,
        special_requests=body.special_requests,
    )


def _own_booking(db: Session, booking_id: str, me: User) -> Booking:
    b = db.get(Booking, booking_id)
    if not b or (b.user_id != me.id and me.role not in STAFF_ROLES):
        raise HTTPException(status_code=404, detail="Not found")
    return b


@router.post("/bookings")
def create_customer_booking(body: BookingCreate, db: Session = Depends(get_db),
                            me: User = Depends(get_current_user)):
    try:
        booking = create_booking(db, to_booking_request(body), me)
    except RoomUnavailableError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except BookingValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "booking_ids": [booking.id], "booking": booking_out(db, booking)}


@router.post("/bookings/upload-document")
async def upload_document(file: UploadFile = File(...), documentType: str = Form(...),
                          me: User = Depends(get_current_user)):
    data = await file.read()
    try:
        path = store_document(owner_id=me.id, document_type=documentType,
                              content_type=file.content_type or "", data=data)
    except DocumentError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "path": path, "documentType": documentType}


@router.post("/bookings/verify-permission-code")
def verify_code(body: PermissionCodeIn, db: Session = Depends(get_db)):
    if not body.code:
        raise HTTPException(status_code=400, detail="Code is required")
    return {"success": True, "valid": verify_permission_code(db, body.code)}


@router.get("/me/bookings")
def my_bookings(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    items = db.query(Booking).filter(Booking.user_id == me.id).order_by(Booking.created_at.desc()).all()
    return [booking_out(db, b) for b in items]


@router.get("/bookings/{booking_id}")
def get_booking(booking_id: str, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    return booking_out(db, _own_booking(db, booking_id, me))


@router.get("/bookings/{booking_id}/invoice")
def download_invoice(booking_id: str, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    b = _own_booking(db, booking_id, me)
    if b.payment_status != "paid":
        raise HTTPException(status_code=409, detail="Invoice is only available after payment")
    pdf = render_invoice_pdf_bytes(booking=booking_out(db, b), property_info=get_property_settings(db))
    return Response(content=pdf, media_type="application/pdf",
                    headers={"Content-Disposition": f'attachment; filename="{b.booking_number}.pdf"'})


@router.post("/bookings/{booking_id}/payment")
def submit_payment(booking_id: str, body: PaymentSubmit, db: Session = Depends(get_db),
                   me: User = Depends(get_current_user)):
    b = _own_booking(db, booking_id, me)
    try:
        p = submit_manual_payment(db, b, method=body.method, reference=body.reference,
                                  screenshot_path=body.screenshotPath)
    except PaymentError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "payment": payment_out(p), "paymentStatus": b.payment_status}


@router.get("/documents/{token}")
def download_document(token: str):
    """Local-storage target of a signed document link."""
    try:
        path = resolve_document_token(token)
    except DocumentError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return FileResponse(path=path)
