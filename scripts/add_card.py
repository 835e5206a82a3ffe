#!/usr/bin/env python3
"""
Register a profile (with its first card) or attach a new card to an existing profile.

Usage:
  python scripts/add_card.py --slug mario-rossi --name "Mario Rossi" [--title CTO] [--photo ./mario.jpg]
  python scripts/add_card.py --slug mario-rossi --card-id abc123
"""
from __future__ import annotations

import argparse
import sys

from api.core.config import get_settings
from api.domain.slugs import generate_card_id, is_valid_slug
from api.repositories.sql_repository import SQLRepository
from api.services.image_service import MAX_SIZES, resize_and_store


def main() -> None:
    ap = argparse.ArgumentParser(description="Register profile/card")
    ap.add_argument("--slug", required=True, help="Profile slug (e.g. mario-rossi)")
    ap.add_argument("--name", help="Display name (creates the profile when it does not exist)")
    ap.add_argument("--card-id", help="Card id to attach (default: random 6 chars)")
    ap.add_argument("--title")
    ap.add_argument("--company")
    ap.add_argument("--phone")
    ap.add_argument("--email", help="Public contact e-mail")
    ap.add_argument("--website")
    ap.add_argument("--photo", help="Local image file, resized and stored under uploads")
    ap.add_argument("--inactive", action="store_true", help="Register the card deactivated")
    args = ap.parse_args()

    repo = SQLRepository()
    slug = (args.slug or "").strip()
    if not is_valid_slug(slug):
        raise SystemExit("Invalid slug (use 3-30 chars [a-z0-9-])")

    profile = repo.get_profile_by_slug(slug)
    if profile:
        card_id = (args.card_id or "").strip() or generate_card_id()
        while not args.card_id and repo.get_card_by_card_id(card_id):
            card_id = generate_card_id()
        card = repo.create_card(card_id, profile.id, is_active=not args.inactive)
    else:
        name = (args.name or "").strip()
        if not name:
            raise SystemExit(f"Profile '{slug}' does not exist; --name is required to create it")
        photo_url = None
        if args.photo:
            settings = get_settings()
            with open(args.photo, "rb") as fh:
                photo_url = resize_and_store(
                    fh.read(),
                    MAX_SIZES["photo"],
                    uploads_dir=settings.uploads_dir,
                    quality=settings.upload_jpeg_quality,
                )
        profile, card = repo.create_profile(
            slug,
            name,
            title=args.title,
            company=args.company,
            phone=args.phone,
            contact_email=args.email,
            website=args.website,
            photo_url=photo_url,
            card_id=args.card_id,
            is_active=not args.inactive,
        )

    print("OK: card registered")
    print(f"  Profile: {profile.display_name} ({profile.slug})")
    print(f"  Card ID: {card.card_id}")


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover - CLI usage
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
