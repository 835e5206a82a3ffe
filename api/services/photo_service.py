"""
Profile photo inlining for vCards.

Fetches the photo over HTTP, optionally shrinks it so constrained parsers
(notably iOS Contacts) accept the embedded image, and hands back a
PhotoPayload. Every failure is soft: the caller gets None and the vCard is
produced without a photo.
"""
from __future__ import annotations

import io
import logging
from typing import Optional

import httpx
from PIL import Image, ImageOps, UnidentifiedImageError

from api.core.config import Settings, get_settings
from api.core.utils import absolute_url
from api.domain.vcard import PhotoPayload

COVER = "cover"
INSIDE = "inside"


def sniff_image_type(content_type: str | None) -> str:
    """Map a Content-Type header to a vCard TYPE token (JPEG when unknown)."""
    ct = (content_type or "").lower()
    if "png" in ct:
        return "PNG"
    if "gif" in ct:
        return "GIF"
    return "JPEG"


def shrink_to_jpeg(data: bytes, max_dimension: int, *, quality: int = 80, fit: str = COVER) -> bytes:
    """
    Decode, auto-rotate from EXIF and re-encode as JPEG within max_dimension.

    `cover` crops the centre square before scaling (compact round avatars),
    `inside` keeps the aspect ratio. Images are never upscaled.
    """
    image = Image.open(io.BytesIO(data))
    image = ImageOps.exif_transpose(image)
    image = image.convert("RGB")
    if fit == COVER:
        width, height = image.size
        side = min(width, height)
        left = (width - side) // 2
        top = (height - side) // 2
        image = image.crop((left, top, left + side, top + side))
        target = min(side, max_dimension)
        if target != side:
            image = image.resize((target, target), Image.LANCZOS)
    else:
        image.thumbnail((max_dimension, max_dimension), Image.LANCZOS)
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality, optimize=True)
    return buffer.getvalue()


class PhotoInliner:
    """Fetch a photo URL and turn it into an embeddable PhotoPayload."""

    def __init__(
        self,
        client: httpx.Client | None = None,
        *,
        timeout: float = 5.0,
        resize: bool = True,
        max_dimension: int = 400,
        quality: int = 80,
        fit: str = COVER,
        public_base: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._client = client
        self.timeout = timeout
        self.resize = resize
        self.max_dimension = max_dimension
        self.quality = quality
        self.fit = fit
        self.public_base = public_base
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs) -> "PhotoInliner":
        settings = settings or get_settings()
        return cls(
            timeout=settings.photo_fetch_timeout,
            resize=settings.photo_resize_enabled,
            max_dimension=settings.photo_max_dimension,
            quality=settings.photo_jpeg_quality,
            fit=settings.photo_fit,
            public_base=settings.public_base_url,
            **kwargs,
        )

    def _get(self, url: str) -> httpx.Response:
        if self._client is not None:
            return self._client.get(url, timeout=self.timeout, follow_redirects=True)
        with httpx.Client(timeout=self.timeout, follow_redirects=True) as client:
            return client.get(url)

    def fetch_and_encode(self, photo_url: str | None) -> Optional[PhotoPayload]:
        url = (photo_url or "").strip()
        if not url:
            return None
        url = absolute_url(url, self.public_base)
        self.logger.info("photo.fetch.start", extra={"photo_url": url})
        try:
            response = self._get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            self.logger.warning("photo.fetch.error", extra={"photo_url": url, "error": str(exc)})
            return None
        if not response.is_success:
            self.logger.warning(
                "photo.fetch.http_error",
                extra={"photo_url": url, "status_code": response.status_code},
            )
            return None

        data = response.content
        if not data:
            self.logger.warning("photo.fetch.empty", extra={"photo_url": url})
            return None
        image_type = sniff_image_type(response.headers.get("content-type"))

        if self.resize:
            try:
                data = shrink_to_jpeg(data, self.max_dimension, quality=self.quality, fit=self.fit)
            except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
                self.logger.warning("photo.transform.error", extra={"photo_url": url, "error": str(exc)})
                return None
            image_type = "JPEG"

        payload = PhotoPayload(data=data, image_type=image_type)
        self.logger.info(
            "photo.fetch.ok",
            extra={"photo_url": url, "image_type": image_type, "size": len(data)},
        )
        return payload
