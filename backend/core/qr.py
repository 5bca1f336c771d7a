import base64
import io
import json

import qrcode
from qrcode.constants import ERROR_CORRECT_M

from core.config import settings
from db.tire import Tire


def tire_qr_payload(tire: Tire) -> str:
    """JSON text encoded into a tire's QR code (what the scanner page reads)."""
    return json.dumps(
        {
            "id": str(tire.id),
            "qrCodeId": tire.qr_code_id,
            "name": tire.name,
            "brand": tire.brand,
            "type": "TIRE",
        }
    )


def render_qr_data_url(data: str) -> str:
    """Render ``data`` as a PNG QR code and return it as a base64 data URL."""
    qr = qrcode.QRCode(
        error_correction=ERROR_CORRECT_M,
        box_size=settings.qr_box_size,
        border=settings.qr_border,
    )
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"
