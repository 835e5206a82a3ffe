"""Upload pipeline: resize raw image bytes and store them under the uploads dir."""
from __future__ import annotations

import hashlib
import io
import os

from PIL import Image, ImageOps, UnidentifiedImageError

# Max dimension per upload kind
MAX_SIZES = {
    "photo": 800,
    "logo": 400,
    "background": 1200,
}
DEFAULT_MAX_SIZE = 800


class ImageProcessingError(Exception):
    """Raised when the uploaded bytes are not a decodable image."""


def max_size_for(kind: str | None) -> int:
    return MAX_SIZES.get((kind or "").strip().lower(), DEFAULT_MAX_SIZE)


def resize_image(data: bytes, max_dimension: int, *, quality: int = 85) -> bytes:
    """EXIF auto-rotate, fit inside max_dimension (no upscaling), JPEG."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise ImageProcessingError("Invalid image file") from exc
    image = ImageOps.exif_transpose(image)
    image = image.convert("RGB")
    image.thumbnail((max_dimension, max_dimension), Image.LANCZOS)
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality, optimize=True)
    return buffer.getvalue()


def store_image(payload: bytes, uploads_dir: str) -> str:
    """Write already-processed JPEG bytes; the name is derived from the content."""
    digest = hashlib.sha1(payload).hexdigest()
    filename = f"{digest[:16]}.jpg"
    os.makedirs(uploads_dir, exist_ok=True)
    dest_path = os.path.join(uploads_dir, filename)
    if not os.path.exists(dest_path):
        with open(dest_path, "wb") as f:
            f.write(payload)
    etag = hashlib.md5(payload).hexdigest()[:8]
    return f"/static/uploads/{filename}?v={etag}"


def resize_and_store(data: bytes, max_dimension: int, *, uploads_dir: str, quality: int = 85) -> str:
    """Resize `data` and write it to `uploads_dir`. Returns the public URL path."""
    return store_image(resize_image(data, max_dimension, quality=quality), uploads_dir)
