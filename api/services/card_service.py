"""
Card-related helpers (public lookup, tap recording) shared across routers.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from api.domain.profile import CardStore, CardView, ProfileView

logger = logging.getLogger(__name__)


def find_active_card(store: CardStore, card_id: str) -> Tuple[Optional[CardView], Optional[ProfileView]]:
    """
    Locate an active card and its profile. Returns (card, profile); both None
    when the card is missing or inactive.
    """
    card_value = (card_id or "").strip()
    if not card_value:
        return None, None
    card = store.get_card_by_card_id(card_value)
    if not card or not card.is_active:
        return None, None
    profile = store.get_profile_by_id(card.profile_id)
    if not profile:
        return None, None
    return card, profile


def record_tap(store: CardStore, card_id: str, log: logging.Logger | None = None) -> bool:
    """Best-effort tap counter; never raises."""
    log = log or logger
    try:
        store.increment_tap_count(card_id)
    except Exception as exc:
        log.warning("card.tap.failed", extra={"card_id": card_id, "error": str(exc)})
        return False
    return True
