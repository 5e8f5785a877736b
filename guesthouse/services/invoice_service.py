from __future__ import annotations

import io
from datetime import datetime, timezone

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from guesthouse.core.config import settings


def _inr(value) -> str:
    return f"Rs. {float(value or 0):,.2f}"


def render_invoice_pdf_bytes(*, booking: dict, property_info: dict | None = None) -> bytes:
    """Return an A4 PDF invoice for a booking as produced by ``booking_out``. Pure function."""
    prop = property_info or {}
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    w, h = A4

    # Header
    c.setFont("Helvetica-Bold", 18)
    c.drawString(40, h - 60, prop.get("name") or settings.PROPERTY_NAME)
    c.setFont("Helvetica", 10)
    y = h - 76
    for line in (prop.get("address"), prop.get("phone"), prop.get("email")):
        if line:
            c.drawString(40, y, line)
            y -= 14
    gstin = prop.get("gstin") or settings.PROPERTY_GSTIN
    if gstin:
        c.drawString(40, y, f"GSTIN: {gstin}")
        y -= 14

    c.setFont("Helvetica-Bold", 14)
    c.drawString(w - 200, h - 60, "TAX INVOICE")
    c.setFont("Helvetica", 10)
    c.drawString(w - 200, h - 76, f"Booking: {booking.get('bookingNumber')}")
    c.drawString(w - 200, h - 90, f"Status: {booking.get('status')} / {booking.get('paymentStatus')}")

    # Guest block
    y = min(y, h - 110) - 20
    c.setFont("Helvetica-Bold", 12)
    c.drawString(40, y, "Billed to")
    c.setFont("Helvetica", 11)
    c.drawString(40, y - 18, booking.get("guestName") or "(Not provided)")
    c.drawString(40, y - 34, booking.get("guestEmail") or "")
    c.drawString(40, y - 50, booking.get("guestPhone") or "")

    # Stay block
    y -= 85
    c.setFont("Helvetica-Bold", 12)
    c.drawString(40, y, "Stay")
    c.setFont("Helvetica", 11)
    c.drawString(40, y - 18, f"Check-in:  {(booking.get('checkIn') or '')[:16].replace('T', ' ')}")
    c.drawString(40, y - 34, f"Check-out: {(booking.get('checkOut') or '')[:16].replace('T', ' ')}")
    c.drawString(40, y - 50, f"Nights:    {booking.get('totalNights')}")

    # Line items
    y -= 85
    c.setFont("Helvetica-Bold", 11)
    c.drawString(40, y, "Room")
    c.drawString(220, y, "Rate / night")
    c.drawString(320, y, "GST %")
    c.drawString(380, y, "Amount")
    c.drawString(470, y, "GST")
    c.setFont("Helvetica", 10)
    for item in booking.get("items") or []:
        y -= 16
        label = f"{item.get('roomNumber') or '-'} {item.get('roomType') or ''}".strip()
        c.drawString(40, y, label[:32])
        c.drawString(220, y, _inr(item.get("nightlyRate")))
        c.drawString(320, y, f"{item.get('gstPercentage', 0):g}")
        c.drawString(380, y, _inr(item.get("lineSubtotal")))
        c.drawString(470, y, _inr(item.get("lineTax")))

    # Totals
    y -= 36
    c.setFont("Helvetica", 11)
    c.drawString(320, y, "Room charges")
    c.drawString(450, y, _inr(booking.get("roomCharges")))
    c.drawString(320, y - 16, "GST")
    c.drawString(450, y - 16, _inr(booking.get("gstAmount")))
    c.setFont("Helvetica-Bold", 11)
    c.drawString(320, y - 34, "Total")
    c.drawString(450, y - 34, _inr(booking.get("totalAmount")))
    c.setFont("Helvetica", 10)
    c.drawString(320, y - 50, "Advance paid")
    c.drawString(450, y - 50, _inr(booking.get("advancePaid")))
    c.drawString(320, y - 64, "Balance")
    c.drawString(450, y - 64, _inr(booking.get("balanceAmount")))

    # Footer
    c.setFont("Helvetica", 9)
    c.drawString(40, 40, "This is a computer generated invoice.")
    c.drawString(40, 26, f"Generated: {datetime.now(timezone.utc).isoformat()}")

    c.showPage()
    c.save()
    return buf.getvalue()
