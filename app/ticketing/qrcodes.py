"""
QR code rendering for ticket credentials.

Tickets are admitted by scanning a QR code that encodes Ticket.credential.
Codes are rendered as PNG with medium error correction, which survives
phone screens with cracked glass or low brightness.

Usage:
    from ticketing.qrcodes import render_qr_png, render_qr_data_url

    png_bytes = render_qr_png(ticket.credential)        # email attachment
    data_url = render_qr_data_url(ticket.credential)    # JSON for the web page
"""

from __future__ import annotations

import base64
import io

import qrcode
from qrcode.constants import ERROR_CORRECT_M

QR_BOX_SIZE = 7
QR_BORDER = 2


def render_qr_png(value: str, box_size: int = QR_BOX_SIZE, border: int = QR_BORDER) -> bytes:
    """Render value as a black-on-white QR code PNG."""
    qr = qrcode.QRCode(
        error_correction=ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(value)
    qr.make(fit=True)

    image = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def render_qr_data_url(value: str) -> str:
    """Render value as a data:image/png;base64 URL for inline display."""
    encoded = base64.b64encode(render_qr_png(value)).decode("ascii")
    return f"data:image/png;base64,{encoded}"
