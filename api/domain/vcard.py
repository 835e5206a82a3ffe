"""
vCard 3.0 rendering for public profiles.

The output is a pure function of its inputs: same profile and photo always
produce byte-identical text (no timestamps, no REV/UID lines).
"""
from __future__ import annotations

import base64
import re
from dataclasses import dataclass
from typing import Optional

from api.core.config import DEFAULT_PRODID
from api.domain.profile import ProfileView

CRLF = "\r\n"
FOLD_WIDTH = 75
PHOTO_TYPES = ("JPEG", "PNG", "GIF")

# tiktok/youtube are shown on the card page but never written to the contact file
VCARD_SOCIALS = ("linkedin", "instagram", "twitter", "github")

_NON_DIGIT_RE = re.compile(r"\D")


@dataclass(frozen=True)
class PhotoPayload:
    """Image bytes ready to be embedded in a PHOTO property."""

    data: bytes
    image_type: str = "JPEG"

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    @property
    def mime_type(self) -> str:
        return f"image/{self.image_type.lower()}"


def escape_value(value: str) -> str:
    """Escape a free-text value (backslash, comma, semicolon, newline)."""
    text = (value or "").replace("\r\n", "\n").replace("\r", "\n")
    return (
        text.replace("\\", "\\\\")
        .replace(",", "\\,")
        .replace(";", "\\;")
        .replace("\n", "\\n")
    )


def unescape_value(value: str) -> str:
    out = []
    chars = iter(value or "")
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        nxt = next(chars, "")
        out.append("\n" if nxt in ("n", "N") else nxt)
    return "".join(out)


def split_name(display_name: str) -> tuple[str, str]:
    """
    Return (given, family) for the N property.

    First token is the given name, the rest is the family name. Honorifics and
    suffixes are not understood; single-word names end up as given name only.
    """
    parts = (display_name or "").strip().split(" ")
    given = parts[0] if parts else ""
    family = " ".join(parts[1:])
    return given, family


def normalize_phone(raw: str) -> str:
    """Digits only, keeping a leading '+'."""
    s = (raw or "").strip()
    if not s:
        return ""
    keep_plus = s.startswith("+")
    digits = _NON_DIGIT_RE.sub("", s)
    return ("+" + digits) if keep_plus and digits else digits


def fold_base64(payload: str, width: int = FOLD_WIDTH) -> list[str]:
    """Cut a base64 string into chunks of at most `width` characters."""
    return [payload[i:i + width] for i in range(0, len(payload), width)]


def vcard_filename(display_name: str) -> str:
    """Download name: whitespace runs collapsed to underscores, plus .vcf."""
    stem = re.sub(r"\s+", "_", (display_name or "").strip()) or "contact"
    return f"{stem}.vcf"


def _photo_lines(photo_b64: str, photo_type: str, fold: bool) -> list[str]:
    typ = (photo_type or "JPEG").upper()
    if typ not in PHOTO_TYPES:
        typ = "JPEG"
    prefix = f"PHOTO;ENCODING=b;TYPE={typ}:"
    if not fold:
        return [prefix + photo_b64]
    chunks = fold_base64(photo_b64)
    lines = [prefix + chunks[0]]
    lines.extend(" " + chunk for chunk in chunks[1:])
    return lines


def encode(
    profile: ProfileView,
    photo: Optional[PhotoPayload] = None,
    *,
    fold_photo: bool = True,
    prodid: str = DEFAULT_PRODID,
    photo_base64: Optional[str] = None,
    photo_type: str = "JPEG",
) -> str:
    """
    Render `profile` as a vCard 3.0 document.

    `photo` carries raw bytes; callers that already hold base64 text (the
    client save flow) may pass `photo_base64`/`photo_type` instead.
    With `fold_photo` the PHOTO value is split into 75-character lines,
    continuation lines starting with a single space.
    """
    display_name = (profile.display_name or "").strip()
    if not display_name:
        raise ValueError("display_name is required to build a vCard")

    lines = [
        "BEGIN:VCARD",
        "VERSION:3.0",
        f"PRODID:{prodid}",
        f"FN:{escape_value(profile.display_name)}",
    ]
    given, family = split_name(profile.display_name)
    lines.append(f"N:{escape_value(family)};{escape_value(given)};;;")

    if profile.title:
        lines.append(f"TITLE:{escape_value(profile.title)}")
    if profile.company:
        lines.append(f"ORG:{escape_value(profile.company)}")
    if profile.phone:
        phone = normalize_phone(profile.phone)
        if phone:
            lines.append(f"TEL;TYPE=CELL:{phone}")
    if profile.contact_email:
        lines.append(f"EMAIL;TYPE=INTERNET:{profile.contact_email}")
    if profile.website:
        lines.append(f"URL:{profile.website}")

    socials = profile.socials or {}
    for platform in VCARD_SOCIALS:
        url = socials.get(platform)
        if url:
            lines.append(f"X-SOCIALPROFILE;TYPE={platform}:{url}")

    if photo is not None and photo.data:
        lines.extend(_photo_lines(photo.base64, photo.image_type, fold_photo))
    elif photo_base64:
        lines.extend(_photo_lines(photo_base64, photo_type, fold_photo))

    lines.append("END:VCARD")
    return CRLF.join(lines)
