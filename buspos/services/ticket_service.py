from __future__ import annotations

import io
from datetime import datetime, timezone

import qrcode
from qrcode import constants
from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from buspos.core.config import settings


def render_qr_png_bytes(data: str, size: int = 300, border: int = 4) -> bytes:
    """PNG of the boarding code. Pure function."""
    qr = qrcode.QRCode(
        version=1,
        error_correction=constants.ERROR_CORRECT_M,
        box_size=10,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white").convert("RGB")
    img = img.resize((size, size), Image.LANCZOS)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def render_ticket_pdf_bytes(*, qr_code: str, passenger_name: str, passenger_phone: str, route_from: str,
                            route_to: str, departure: str, arrival: str, bus_number: str, seat_number: str,
                            price: int, status: str, payment_type: str, payment_status: str) -> bytes:
    """Return an A4 PDF bytes. Pure function."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    w, h = A4

    # Header
    c.setFont("Helvetica-Bold", 18)
    c.drawString(40, h - 60, "BusPOS Ticket")
    c.setFont("Helvetica", 11)
    c.drawString(40, h - 80, f"Ticket Code: {qr_code}")
    c.drawString(40, h - 96, f"Status: {status}")

    # Passenger block
    c.setFont("Helvetica-Bold", 12)
    c.drawString(40, h - 130, "Passenger")
    c.setFont("Helvetica", 11)
    c.drawString(40, h - 148, passenger_name or "(Not provided)")
    c.drawString(40, h - 164, passenger_phone or "")

    # Trip block
    c.setFont("Helvetica-Bold", 12)
    c.drawString(40, h - 200, "Trip")
    c.setFont("Helvetica", 11)
    c.drawString(40, h - 218, f"From: {route_from}")
    c.drawString(40, h - 234, f"To:   {route_to}")
    c.drawString(40, h - 250, f"Departure: {departure}")
    c.drawString(40, h - 266, f"Arrival:   {arrival}")
    c.drawString(40, h - 282, f"Bus: {bus_number}    Seat: {seat_number}")

    # Payment
    c.setFont("Helvetica-Bold", 12)
    c.drawString(40, h - 320, "Payment")
    c.setFont("Helvetica", 11)
    c.drawString(40, h - 338, f"Fare: {price}    Method: {payment_type}    Status: {payment_status}")

    # Boarding code
    qr_png = render_qr_png_bytes(qr_code, size=180)
    c.drawImage(ImageReader(io.BytesIO(qr_png)), w - 220, h - 300, width=180, height=180)
    if settings.API_PUBLIC_URL:
        c.setFont("Helvetica", 8)
        c.drawString(w - 220, h - 312, settings.API_PUBLIC_URL.rstrip("/"))

    # Footer
    c.setFont("Helvetica", 9)
    c.drawString(40, 40, "Show the QR code to the conductor when boarding.")
    c.drawString(40, 26, f"Generated: {datetime.now(timezone.utc).isoformat()}")

    c.showPage()
    c.save()
    return buf.getvalue()
