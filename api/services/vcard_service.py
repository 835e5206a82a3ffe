"""
vCard use case: resolve a card identifier to a profile and render its contact file.

Lookups go through the CardStore interface; the photo is optional enrichment
and its failures never reach the caller. This service does not record taps,
the viewing page does that separately.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from api.core.config import DEFAULT_PRODID, Settings, get_settings
from api.domain.profile import CardStore, CardView, ProfileView
from api.domain.vcard import PhotoPayload, encode, vcard_filename
from api.services.photo_service import PhotoInliner


class VCardError(Exception):
    """Base exception for the vCard workflow."""


class InvalidIdentifierError(VCardError):
    """Raised when the card identifier is empty."""


class CardNotFoundError(VCardError):
    """Raised when no active card matches the identifier."""


class ProfileNotFoundError(VCardError):
    """Raised when the card points to a profile that no longer exists."""


@dataclass(frozen=True)
class VCardResult:
    document: str
    filename: str
    card: CardView
    profile: ProfileView
    photo: Optional[PhotoPayload]


class VCardService:
    """Card/profile resolution plus vCard rendering."""

    def __init__(
        self,
        store: CardStore,
        photo_inliner: PhotoInliner | None = None,
        *,
        fold_photo: bool = True,
        prodid: str = DEFAULT_PRODID,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.photo_inliner = photo_inliner
        self.fold_photo = fold_photo
        self.prodid = prodid
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_settings(cls, store: CardStore, photo_inliner: PhotoInliner | None = None, settings: Settings | None = None, **kwargs) -> "VCardService":
        settings = settings or get_settings()
        return cls(
            store,
            photo_inliner,
            fold_photo=settings.vcard_fold_photo,
            prodid=settings.vcard_prodid,
            **kwargs,
        )

    def normalize(self, identifier: str | None) -> str:
        return (identifier or "").strip()

    def _card_for_slug(self, slug: str) -> tuple[Optional[CardView], Optional[ProfileView]]:
        profile = self.store.get_profile_by_slug(slug)
        if not profile:
            return None, None
        cards = list(self.store.get_cards_by_profile_id(profile.id))
        if not cards:
            return None, profile
        active = next((c for c in cards if c.is_active), None)
        return active or cards[0], profile

    def resolve_card(self, identifier: str | None) -> tuple[CardView, ProfileView]:
        """
        Find the card for `identifier` (card id first, then profile slug)
        and its owning profile.
        """
        value = self.normalize(identifier)
        if not value:
            raise InvalidIdentifierError("Card ID required")

        card = self.store.get_card_by_card_id(value)
        profile = None
        if card is None:
            card, profile = self._card_for_slug(value)
        if card is None or not card.is_active:
            self.logger.info("vcard.not_found", extra={"identifier": value, "reason": "card"})
            raise CardNotFoundError("Card not found or inactive")

        if profile is None or profile.id != card.profile_id:
            profile = self.store.get_profile_by_id(card.profile_id)
        if profile is None:
            self.logger.info("vcard.not_found", extra={"identifier": value, "reason": "profile"})
            raise ProfileNotFoundError("Profile not found")
        return card, profile

    def _photo(self, profile: ProfileView) -> Optional[PhotoPayload]:
        if not profile.photo_url or self.photo_inliner is None:
            return None
        return self.photo_inliner.fetch_and_encode(profile.photo_url)

    def build(self, identifier: str | None) -> VCardResult:
        card, profile = self.resolve_card(identifier)
        photo = self._photo(profile)
        document = encode(profile, photo, fold_photo=self.fold_photo, prodid=self.prodid)
        self.logger.info(
            "vcard.generated",
            extra={"card_id": card.card_id, "has_photo": photo is not None, "length": len(document)},
        )
        return VCardResult(
            document=document,
            filename=vcard_filename(profile.display_name),
            card=card,
            profile=profile,
            photo=photo,
        )

    def diagnostics(self, result: VCardResult, identifier: str) -> dict:
        """Intermediate lookup/photo results for the ?debug=1 view."""
        photo = result.photo
        return {
            "identifier": identifier,
            "resolvedBy": "cardId" if result.card.card_id == self.normalize(identifier) else "slug",
            "card": result.card.to_public_dict(),
            "profile": {
                "id": result.profile.id,
                "slug": result.profile.slug,
                "displayName": result.profile.display_name,
                "photoUrl": result.profile.photo_url,
            },
            "photo": {
                "requested": bool(result.profile.photo_url),
                "embedded": photo is not None,
                "type": photo.image_type if photo else None,
                "bytes": len(photo.data) if photo else 0,
                "base64Length": len(photo.base64) if photo else 0,
            },
            "foldPhoto": self.fold_photo,
            "filename": result.filename,
            "vcardLength": len(result.document),
            "vcardLines": len(result.document.split("\r\n")),
        }
