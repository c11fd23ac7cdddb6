# Purpose: Render a QRIS payload string as a scannable QR code image.

import io
import base64
import qrcode
from qrcode.exceptions import DataOverflowError

# --- CONFIGURATION ---
DEFAULT_WIDTH = 300
DEFAULT_MARGIN = 1
DEFAULT_DARK = "#1976d2"
DEFAULT_LIGHT = "#ffffff"


class QRRenderError(RuntimeError):
    def __init__(self, message, retryable=True):
        super().__init__(message)
        self.retryable = retryable


def render_qr_image(payload, width=DEFAULT_WIDTH, margin=DEFAULT_MARGIN, dark=DEFAULT_DARK, light=DEFAULT_LIGHT):
    """Encodes the payload as a QR image no wider than `width` pixels."""
    if margin < 0:
        raise QRRenderError(f"Margin must not be negative, got {margin}", retryable=False)

    qr = qrcode.QRCode(error_correction=qrcode.ERROR_CORRECT_M, border=margin)
    qr.add_data(payload)
    try:
        qr.make(fit=True)
    except DataOverflowError as e:
        raise QRRenderError(f"Payload of {len(payload)} characters exceeds QR capacity", retryable=False) from e

    # The box size is fixed once the symbol version is known.
    total_modules = qr.modules_count + 2 * margin
    qr.box_size = max(1, width // total_modules)

    try:
        return qr.make_image(fill_color=dark, back_color=light)
    except ValueError as e:
        raise QRRenderError(f"Invalid colour: {e}", retryable=False) from e


def render_qr_png(payload, **options):
    img = render_qr_image(payload, **options)
    bio = io.BytesIO()
    try:
        img.save(bio, format="PNG")
    except OSError as e:
        raise QRRenderError(f"PNG encoding failed: {e}") from e
    return bio.getvalue()


def render_qr_data_uri(payload, attempts=1, **options):
    """
    Returns the QR image as a 'data:image/png;base64,...' URI. Only the
    rendering is retried; errors that would repeat identically are raised
    on the first attempt.
    """
    last_error = None
    for _ in range(max(1, attempts)):
        try:
            png = render_qr_png(payload, **options)
            return "data:image/png;base64," + base64.b64encode(png).decode("ascii")
        except QRRenderError as e:
            if not e.retryable:
                raise
            last_error = e
    raise last_error
