import base64
import io
import os
import random
import string
import time

import qrcode
from qrcode.constants import ERROR_CORRECT_H

from core.config import settings

QR_SUBDIR = "qrcodes"
_BASE36 = string.digits + string.ascii_lowercase


def new_inventory_qr_data() -> str:
    """INV-<epoch ms>-<9 base36 chars>"""
    suffix = "".join(random.choices(_BASE36, k=9))
    return f"INV-{int(time.time() * 1000)}-{suffix}"


def _render_png(data: str) -> bytes:
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_H, box_size=10, border=4)
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image()
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def generate_qr_code_file(data: str) -> str:
    """Write the QR PNG under uploads/qrcodes and return its absolute path."""
    output_dir = os.path.join(settings.uploads_dir, QR_SUBDIR)
    os.makedirs(output_dir, exist_ok=True)
    output_path = os.path.join(output_dir, f"{data}.png")
    with open(output_path, "wb") as f:
        f.write(_render_png(data))
    return output_path


def generate_qr_code_data_url(data: str) -> str:
    encoded = base64.b64encode(_render_png(data)).decode("ascii")
    return f"data:image/png;base64,{encoded}"
