"""Render text payloads as PNG QR codes embedded in data URIs."""

import base64
import math
from io import BytesIO

import qrcode
from qrcode.exceptions import DataOverflowError
from PIL import Image

ERROR_CORRECTION = qrcode.constants.ERROR_CORRECT_H
BORDER_MODULES = 1
IMAGE_SIZE = 300
FILL_COLOR = "#000000"
BACK_COLOR = "#ffffff"
DATA_URI_PREFIX = "data:image/png;base64,"


class EncodingError(Exception):
    """Raised when a payload cannot be rendered as a QR code."""


def render_png(content: str) -> bytes:
    """Return the PNG bytes of ``content`` at IMAGE_SIZE x IMAGE_SIZE pixels."""
    qr = qrcode.QRCode(error_correction=ERROR_CORRECTION, border=BORDER_MODULES)
    try:
        qr.add_data(content)
        qr.make(fit=True)
    except (ValueError, DataOverflowError) as exc:
        raise EncodingError(f"Cannot encode {len(content)} characters: {exc}") from exc

    total_modules = qr.modules_count + 2 * BORDER_MODULES
    qr.box_size = max(1, int(math.ceil(IMAGE_SIZE / total_modules)))
    img = qr.make_image(fill_color=FILL_COLOR, back_color=BACK_COLOR).get_image()
    img = img.convert("RGB")
    if img.size != (IMAGE_SIZE, IMAGE_SIZE):
        img = img.resize((IMAGE_SIZE, IMAGE_SIZE), Image.NEAREST)

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def to_data_uri(png: bytes) -> str:
    return DATA_URI_PREFIX + base64.b64encode(png).decode("ascii")


def render_data_uri(content: str) -> str:
    return to_data_uri(render_png(content))


def decode_data_uri(data_uri: str) -> bytes:
    """Return the raw PNG bytes stored in a data URI produced by render_data_uri."""
    if not data_uri.startswith(DATA_URI_PREFIX):
        raise ValueError("Not a PNG data URI")
    return base64.b64decode(data_uri[len(DATA_URI_PREFIX):])
