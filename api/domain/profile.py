"""Read-only views of profiles and cards consumed by the vCard core."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Protocol, Sequence

SOCIAL_PLATFORMS = ("linkedin", "instagram", "twitter", "github", "tiktok", "youtube")


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


@dataclass(frozen=True)
class Branding:
    """Optional visual override for the public card page."""

    background_color: Optional[str] = None
    background_gradient: Optional[str] = None
    background_image_url: Optional[str] = None
    logo_url: Optional[str] = None
    logo_position: Optional[str] = None
    text_color: Optional[str] = None
    secondary_text_color: Optional[str] = None
    button_style: Optional[str] = None
    button_radius: Optional[str] = None
    card_style: Optional[str] = None

    _KEYS = {
        "backgroundColor": "background_color",
        "backgroundGradient": "background_gradient",
        "backgroundImageUrl": "background_image_url",
        "logoUrl": "logo_url",
        "logoPosition": "logo_position",
        "textColor": "text_color",
        "secondaryTextColor": "secondary_text_color",
        "buttonStyle": "button_style",
        "buttonRadius": "button_radius",
        "cardStyle": "card_style",
    }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Optional["Branding"]:
        if not data:
            return None
        values = {}
        for key, attr in cls._KEYS.items():
            value = data.get(key, data.get(attr))
            if value not in (None, ""):
                values[attr] = str(value)
        return cls(**values) if values else None

    def to_dict(self) -> dict:
        return {key: getattr(self, attr) for key, attr in self._KEYS.items() if getattr(self, attr)}


def clean_socials(data: Mapping[str, Any] | None) -> dict[str, str]:
    """Keep only known platforms with a non-empty URL."""
    if not data:
        return {}
    socials = {}
    for platform in SOCIAL_PLATFORMS:
        value = data.get(platform)
        if isinstance(value, str) and value.strip():
            socials[platform] = value.strip()
    return socials


@dataclass(frozen=True)
class ProfileView:
    """Projection of a profile document. The core never mutates it."""

    display_name: str
    id: str = ""
    slug: str = ""
    title: Optional[str] = None
    company: Optional[str] = None
    bio: Optional[str] = None
    photo_url: Optional[str] = None
    phone: Optional[str] = None
    contact_email: Optional[str] = None
    website: Optional[str] = None
    socials: Mapping[str, str] = field(default_factory=dict)
    theme: Theme = Theme.DARK
    accent_color: Optional[str] = None
    branding: Optional[Branding] = None

    def to_public_dict(self) -> dict:
        data = {
            "id": self.id,
            "slug": self.slug,
            "displayName": self.display_name,
            "title": self.title,
            "company": self.company,
            "bio": self.bio,
            "photoUrl": self.photo_url,
            "phone": self.phone,
            "contactEmail": self.contact_email,
            "website": self.website,
            "socials": dict(self.socials),
            "theme": self.theme.value,
            "accentColor": self.accent_color,
        }
        if self.branding:
            data["branding"] = self.branding.to_dict()
        return {k: v for k, v in data.items() if v not in (None, "")}


@dataclass(frozen=True)
class CardView:
    card_id: str
    profile_id: str
    is_active: bool = True
    tap_count: int = 0
    last_tap_at: Optional[datetime] = None

    def to_public_dict(self) -> dict:
        return {
            "cardId": self.card_id,
            "profileId": self.profile_id,
            "isActive": self.is_active,
            "tapCount": self.tap_count,
            "lastTapAt": self.last_tap_at.isoformat() if self.last_tap_at else None,
        }


class CardStore(Protocol):
    """Lookups the vCard core needs from the persistence layer."""

    def get_card_by_card_id(self, card_id: str) -> Optional[CardView]: ...

    def get_cards_by_profile_id(self, profile_id: str) -> Sequence[CardView]: ...

    def get_profile_by_slug(self, slug: str) -> Optional[ProfileView]: ...

    def get_profile_by_id(self, profile_id: str) -> Optional[ProfileView]: ...

    def increment_tap_count(self, card_id: str) -> None: ...
