"""High-level data access helpers backed by SQLAlchemy."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select, update

from api.db.models import Card, Profile
from api.db.session import get_session
from api.domain.profile import Branding, CardView, ProfileView, Theme, clean_socials
from api.domain.slugs import generate_card_id

PROFILE_FIELDS = (
    "display_name",
    "title",
    "company",
    "bio",
    "photo_url",
    "phone",
    "contact_email",
    "website",
    "socials",
    "theme",
    "accent_color",
    "branding",
)


class RepositoryError(Exception):
    """Base exception for persistence rules (duplicates, missing rows)."""


class DuplicateSlugError(RepositoryError):
    pass


class DuplicateCardError(RepositoryError):
    pass


class CardNotFoundError(RepositoryError):
    pass


def _profile_view(entity: Profile) -> ProfileView:
    try:
        theme = Theme(entity.theme or Theme.DARK.value)
    except ValueError:
        theme = Theme.DARK
    return ProfileView(
        id=entity.id,
        slug=entity.slug,
        display_name=entity.display_name,
        title=entity.title or None,
        company=entity.company or None,
        bio=entity.bio or None,
        photo_url=entity.photo_url or None,
        phone=entity.phone or None,
        contact_email=entity.contact_email or None,
        website=entity.website or None,
        socials=clean_socials(entity.socials),
        theme=theme,
        accent_color=entity.accent_color or None,
        branding=Branding.from_dict(entity.branding),
    )


def _card_view(entity: Card) -> CardView:
    return CardView(
        card_id=entity.card_id,
        profile_id=entity.profile_id,
        is_active=bool(entity.is_active),
        tap_count=int(entity.tap_count or 0),
        last_tap_at=entity.last_tap_at,
    )


def _column_value(field: str, value: Any) -> Any:
    if field == "socials":
        return clean_socials(value)
    if field == "theme":
        return Theme(value).value
    if field == "branding":
        if isinstance(value, Branding):
            return value.to_dict()
        branding = Branding.from_dict(value)
        return branding.to_dict() if branding else None
    return value


class SQLRepository:
    """Profile/card store. Reads return immutable views, never ORM entities."""

    # -------------------------- cards --------------------------
    def get_card_by_card_id(self, card_id: str) -> Optional[CardView]:
        with get_session() as session:
            entity = session.get(Card, card_id)
            return _card_view(entity) if entity else None

    def get_cards_by_profile_id(self, profile_id: str) -> list[CardView]:
        with get_session() as session:
            stmt = (
                select(Card)
                .where(Card.profile_id == profile_id)
                .order_by(Card.created_at, Card.card_id)
            )
            return [_card_view(c) for c in session.execute(stmt).scalars().all()]

    def create_card(self, card_id: str, profile_id: str, *, is_active: bool = True) -> CardView:
        card_value = (card_id or "").strip()
        with get_session() as session:
            if session.get(Card, card_value):
                raise DuplicateCardError(f"Card ID {card_value} already registered")
            entity = Card(
                card_id=card_value,
                profile_id=profile_id,
                is_active=is_active,
                tap_count=0,
                created_at=datetime.now(timezone.utc),
            )
            session.add(entity)
            session.commit()
            return _card_view(entity)

    def set_card_active(self, card_id: str, active: bool) -> None:
        with get_session() as session:
            result = session.execute(update(Card).where(Card.card_id == card_id).values(is_active=active))
            if not result.rowcount:
                raise CardNotFoundError(f"Card {card_id} not found")
            session.commit()

    def increment_tap_count(self, card_id: str) -> None:
        with get_session() as session:
            stmt = (
                update(Card)
                .where(Card.card_id == card_id)
                .values(tap_count=Card.tap_count + 1, last_tap_at=datetime.now(timezone.utc))
            )
            session.execute(stmt)
            session.commit()

    # -------------------------- profiles --------------------------
    def get_profile_by_id(self, profile_id: str) -> Optional[ProfileView]:
        with get_session() as session:
            entity = session.get(Profile, profile_id)
            return _profile_view(entity) if entity else None

    def get_profile_by_slug(self, slug: str) -> Optional[ProfileView]:
        with get_session() as session:
            stmt = select(Profile).where(Profile.slug == slug)
            entity = session.execute(stmt).scalar_one_or_none()
            return _profile_view(entity) if entity else None

    def list_profiles(self) -> list[ProfileView]:
        with get_session() as session:
            stmt = select(Profile).order_by(Profile.created_at)
            return [_profile_view(p) for p in session.execute(stmt).scalars().all()]

    def create_profile(
        self,
        slug: str,
        display_name: str,
        *,
        owner_email: str | None = None,
        card_id: str | None = None,
        is_active: bool = True,
        **fields: Any,
    ) -> tuple[ProfileView, CardView]:
        """
        Insert a profile and the first card routing to it.

        The card id is random unless `card_id` is given (the id printed on a
        pre-programmed tag).
        """
        card_id = (card_id or "").strip() or None
        unknown = set(fields) - set(PROFILE_FIELDS)
        if unknown:
            raise TypeError(f"Unknown profile fields: {', '.join(sorted(unknown))}")
        now = datetime.now(timezone.utc)
        with get_session() as session:
            if session.execute(select(Profile.id).where(Profile.slug == slug)).first():
                raise DuplicateSlugError(f"Slug {slug} already exists")
            profile = Profile(
                id=uuid.uuid4().hex,
                slug=slug,
                owner_email=owner_email,
                display_name=display_name,
                socials={},
                theme=Theme.DARK.value,
                created_at=now,
                updated_at=now,
            )
            for name, value in fields.items():
                if value is not None:
                    setattr(profile, name, _column_value(name, value))
            session.add(profile)

            if card_id:
                if session.get(Card, card_id):
                    raise DuplicateCardError(f"Card ID {card_id} already registered")
            else:
                card_id = generate_card_id()
                while session.get(Card, card_id):
                    card_id = generate_card_id()
            card = Card(card_id=card_id, profile_id=profile.id, is_active=is_active, tap_count=0, created_at=now)
            session.add(card)
            session.commit()
            return _profile_view(profile), _card_view(card)

    def update_profile(self, profile_id: str, **fields: Any) -> Optional[ProfileView]:
        """Patch the given fields; None values are ignored."""
        unknown = set(fields) - set(PROFILE_FIELDS)
        if unknown:
            raise TypeError(f"Unknown profile fields: {', '.join(sorted(unknown))}")
        with get_session() as session:
            profile = session.get(Profile, profile_id)
            if not profile:
                return None
            for name, value in fields.items():
                if value is not None:
                    setattr(profile, name, _column_value(name, value))
            profile.updated_at = datetime.now(timezone.utc)
            session.commit()
            return _profile_view(profile)
