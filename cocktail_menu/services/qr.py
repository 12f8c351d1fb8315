"""QR code for the table cards: a PNG pointing guests at the menu."""

import io

import qrcode


def render_qr_png(data: str, box_size: int = 20, border: int = 1) -> bytes:
    """Encode ``data`` as a PNG QR code."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()
