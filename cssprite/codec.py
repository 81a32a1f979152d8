from __future__ import annotations

import base64
import io
import logging
import posixpath

from PIL import Image, UnidentifiedImageError

from .errors import DecodeError

MIME_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
}

# Pillow format names keyed by the file extensions we emit
_PIL_FORMATS = {"png": "PNG", "jpg": "JPEG", "jpeg": "JPEG", "gif": "GIF"}

ALPHA_LESS_FORMATS = {"jpg", "jpeg"}


def decode(data: bytes) -> Image.Image:
    """Decode raster bytes into a fully loaded RGBA image."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            logging.debug(f"Decoded {img.format} image {img.width}x{img.height} mode={img.mode}")
            return img.convert("RGBA")
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise DecodeError(f"no image info ({e})") from e


def encode(sheet) -> bytes:
    """Encode a sheet's pixel buffer in its own format."""
    fmt = sheet.format.lower()
    pil_format = _PIL_FORMATS.get(fmt)
    if pil_format is None:
        raise ValueError(f"Unsupported output format: {sheet.format}")

    img = sheet.image
    if fmt in ALPHA_LESS_FORMATS:
        # JPEG has no alpha channel: flatten onto the opaque sheet background
        flat = Image.new("RGB", img.size, tuple(sheet.background[:3]))
        flat.paste(img, mask=img.getchannel("A"))
        img = flat

    with io.BytesIO() as buf:
        if pil_format == "JPEG":
            img.save(buf, format=pil_format, quality=95)
        else:
            img.save(buf, format=pil_format)
        data = buf.getvalue()

    logging.debug(f"Encoded {sheet.name}: {len(data):,} bytes")
    return data


def data_uri(data: bytes, fmt: str) -> str:
    mime = MIME_TYPES.get(fmt.lower(), "application/octet-stream")
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def sheet_ref(sheet, css_path: str, use_base64: bool = False) -> str:
    """Reference a stylesheet uses to load the sheet: a relative URL or a data URI."""
    if use_base64:
        if sheet.data is None:
            raise ValueError(f"Sheet {sheet.name} has not been encoded yet")
        return data_uri(sheet.data, sheet.format)
    return posixpath.join(css_path.replace("\\", "/"), sheet.name)
