"""
Utility helpers shared across routers/services.
"""

from typing import Optional

from .config import get_settings


def absolute_url(path: str, base: Optional[str] = None) -> str:
    """
    Turn relative paths into absolute URLs using PUBLIC_BASE_URL.
    """
    settings = get_settings()
    base_url = (base or settings.public_base_url).rstrip("/")
    if not path:
        return base_url + "/"
    if path.startswith("http://") or path.startswith("https://"):
        return path
    if not path.startswith("/"):
        path = "/" + path
    return base_url + path


def card_public_url(card_id: str, base: Optional[str] = None) -> str:
    """Public URL of a card page (the value written on NFC tags)."""
    return absolute_url(f"/c/{(card_id or '').strip()}", base)
