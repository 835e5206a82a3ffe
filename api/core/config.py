"""
Configuration helpers for the digital card backend.

Routers/services read a typed Settings object instead of fetching os.environ
directly (public base URL, database, vCard and photo policies).
"""

from dataclasses import dataclass
from functools import lru_cache
import os

DEFAULT_PRODID = "-//Sempery//Digital Card//EN"


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    public_base_url: str
    database_url: str
    vcard_prodid: str
    vcard_fold_photo: bool
    vcard_debug_enabled: bool
    photo_fetch_timeout: float
    photo_resize_enabled: bool
    photo_max_dimension: int
    photo_jpeg_quality: int
    photo_fit: str
    uploads_dir: str
    upload_max_bytes: int
    upload_jpeg_quality: int
    blob_revoke_delay: float


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str | None, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _float(value: str | None, default: float = 0.0) -> float:
        try:
            return float(value)
        except (TypeError, ValueError):
            return default

    def _bool(value: str | None, default: bool = False) -> bool:
        if value is None:
            return default
        return value.strip().lower() in {"1", "true", "yes", "on"}

    app_env = (os.getenv("APP_ENV") or "dev").lower()
    photo_fit = (os.getenv("PHOTO_FIT") or "cover").strip().lower()
    if photo_fit not in {"cover", "inside"}:
        photo_fit = "cover"
    default_uploads = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", "web", "uploads"))

    return Settings(
        app_env=app_env,
        public_base_url=os.getenv("PUBLIC_BASE_URL", "https://sempery.com").rstrip("/"),
        database_url=os.getenv("DATABASE_URL", ""),
        vcard_prodid=os.getenv("VCARD_PRODID", DEFAULT_PRODID),
        vcard_fold_photo=_bool(os.getenv("VCARD_FOLD_PHOTO"), True),
        vcard_debug_enabled=_bool(os.getenv("VCARD_DEBUG_ENABLED"), app_env != "prod"),
        photo_fetch_timeout=_float(os.getenv("PHOTO_FETCH_TIMEOUT", "5"), 5.0),
        photo_resize_enabled=_bool(os.getenv("PHOTO_RESIZE_ENABLED"), True),
        photo_max_dimension=_int(os.getenv("PHOTO_MAX_DIMENSION", "400"), 400),
        photo_jpeg_quality=_int(os.getenv("PHOTO_JPEG_QUALITY", "80"), 80),
        photo_fit=photo_fit,
        uploads_dir=os.getenv("UPLOADS_DIR", default_uploads),
        upload_max_bytes=_int(os.getenv("UPLOAD_MAX_BYTES", str(10 * 1024 * 1024)), 10 * 1024 * 1024),
        upload_jpeg_quality=_int(os.getenv("UPLOAD_JPEG_QUALITY", "85"), 85),
        blob_revoke_delay=_float(os.getenv("BLOB_REVOKE_DELAY", "10"), 10.0),
    )
