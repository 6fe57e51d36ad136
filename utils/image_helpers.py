import re
import base64
import binascii
from io import BytesIO

from PIL import Image, UnidentifiedImageError

JPEG_MIME_TYPE = "image/jpeg"
DATA_URI_PREFIX = f"data:{JPEG_MIME_TYPE};base64,"


def slugify_name(text: str) -> str:
    """'Tomato Soup!' -> 'tomato_soup_' (one underscore per non-alphanumeric character)"""
    return re.sub(r'[^a-z0-9]', '_', (text or "").lower())


def to_data_uri(image_bytes: bytes) -> str:
    """Wraps raw JPEG bytes as a base64 data URI."""
    return DATA_URI_PREFIX + base64.b64encode(image_bytes).decode("ascii")


def from_data_uri(data_uri: str) -> bytes:
    """
    Decodes the base64 payload of a data URI.

    Args:
        data_uri: A 'data:<mime>;base64,<payload>' string

    Returns:
        The raw bytes

    Raises:
        ValueError if the URI has no base64 payload or the payload is corrupt
    """
    header, sep, payload = (data_uri or "").partition(",")
    if not sep or not header.startswith("data:") or not header.endswith(";base64"):
        raise ValueError("Not a base64 data URI")
    try:
        return base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Corrupt base64 payload: {e}") from e


def ensure_jpeg(image_bytes: bytes, mime_type: str | None = None) -> bytes:
    """
    Returns JPEG bytes. Imagen returns PNG unless told otherwise, so anything
    that is not already JPEG is re-encoded with Pillow.

    Raises:
        ValueError if the bytes are not a decodable image
    """
    if mime_type == JPEG_MIME_TYPE:
        return image_bytes

    try:
        img = Image.open(BytesIO(image_bytes))
        if img.format == "JPEG":
            return image_bytes
        out = BytesIO()
        img.convert("RGB").save(out, format="JPEG", quality=92)
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Unreadable image bytes: {e}") from e
    return out.getvalue()
