"""Domain helpers for profile slugs and short card identifiers."""
from __future__ import annotations

import re
import secrets

SLUG_PATTERN = re.compile(r"[a-z0-9-]{3,30}")
CARD_ID_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"
CARD_ID_LENGTH = 6
RESERVED_SLUGS = {
    "api",
    "c",
    "vcard",
    "static",
    "dashboard",
    "upload",
}


def is_valid_slug(value: str | None) -> bool:
    """Return True when slug matches allowed pattern and is not reserved."""
    if not value:
        return False
    return bool(SLUG_PATTERN.fullmatch(value)) and value not in RESERVED_SLUGS


def generate_card_id(length: int = CARD_ID_LENGTH) -> str:
    """Random short id written on the NFC tag (e.g. 'k3x9ab')."""
    return "".join(secrets.choice(CARD_ID_ALPHABET) for _ in range(length))
