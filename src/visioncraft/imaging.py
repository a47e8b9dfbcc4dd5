from __future__ import annotations

from io import BytesIO

from PIL import Image, UnidentifiedImageError

ACCEPTED_MIME_TYPES = ("image/jpeg", "image/png", "image/webp")

_FORMAT_TO_MIME = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
}


class InvalidImageError(ValueError):
    pass


def detect_mime(data: bytes) -> str | None:
    """Mime type of an encoded image as Pillow decodes it, or None if it is not an image."""
    if not data:
        return None
    try:
        with Image.open(BytesIO(data)) as img:
            img.verify()
            fmt = img.format or ""
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError):
        return None
    return _FORMAT_TO_MIME.get(fmt.upper())


def read_upload(content: bytes) -> str:
    """
    Validate an uploaded product photo and return its mime type.
    Only the types the upload field advertises are accepted.
    """
    mime = detect_mime(content)
    if mime is None:
        raise InvalidImageError("uploaded file is not a readable image")
    if mime not in ACCEPTED_MIME_TYPES:
        raise InvalidImageError(f"unsupported image type {mime}; use JPG, PNG or WEBP")
    return mime


def to_png_bytes(data: bytes, mime_type: str | None = None) -> bytes:
    if mime_type == "image/png":
        return data
    with Image.open(BytesIO(data)) as img:
        if img.mode not in ("RGB", "RGBA", "L", "LA", "P"):
            img = img.convert("RGBA")
        buf = BytesIO()
        img.save(buf, format="PNG")
    return buf.getvalue()
