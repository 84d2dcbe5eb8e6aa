from __future__ import annotations

import base64
import uuid
from io import BytesIO

import qrcode


def new_pass_id() -> str:
    return uuid.uuid4().hex


def pass_qr_data_url(pass_id: str) -> str:
    """Render the pass id as a PNG QR code, returned as a data URL for badge display."""
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=8,
        border=2,
    )
    qr.add_data(pass_id)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"
