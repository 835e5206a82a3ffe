#!/usr/bin/env python3
"""
Activate or deactivate a card. Deactivated cards answer 404 on /vcard and /c.

Usage:
  python scripts/toggle_card.py --card-id abc123 --off
  python scripts/toggle_card.py --card-id abc123 --on
"""
from __future__ import annotations

import argparse
import sys

from api.repositories.sql_repository import SQLRepository


def main() -> None:
    ap = argparse.ArgumentParser(description="Activate/deactivate a card")
    ap.add_argument("--card-id", required=True, help="Card id to update")
    group = ap.add_mutually_exclusive_group(required=True)
    group.add_argument("--on", action="store_true", help="Activate the card")
    group.add_argument("--off", action="store_true", help="Deactivate the card")
    args = ap.parse_args()

    repo = SQLRepository()
    card_id = (args.card_id or "").strip()
    if not card_id:
        raise SystemExit("Invalid card id")
    repo.set_card_active(card_id, bool(args.on))
    card = repo.get_card_by_card_id(card_id)

    print("OK: card updated")
    print(f"  Card ID: {card_id}")
    print(f"  Active: {card.is_active if card else args.on}")
    if card:
        print(f"  Taps: {card.tap_count}")


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
