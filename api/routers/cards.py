from __future__ import annotations

import io

import qrcode
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, StreamingResponse

from api.core.utils import card_public_url
from api.domain.profile import CardStore
from api.services.card_service import find_active_card, record_tap

router = APIRouter(prefix="/api/cards", tags=["cards"])


def _get_store(request: Request) -> CardStore:
    store = getattr(getattr(request.app, "state", None), "store", None)
    if not store:
        raise RuntimeError("Card store not configured")
    return store


def _not_found() -> JSONResponse:
    return JSONResponse({"error": "Card not found or inactive"}, status_code=404)


@router.get("/{card_id}")
def card_detail(card_id: str, request: Request):
    card, profile = find_active_card(_get_store(request), card_id)
    if not card or not profile:
        return _not_found()
    return {"card": card.to_public_dict(), "profile": profile.to_public_dict()}


@router.post("/{card_id}/tap")
def card_tap(card_id: str, request: Request):
    # Fire-and-forget: the card page never waits on or fails because of the counter
    record_tap(_get_store(request), card_id)
    return {"ok": True}


@router.get("/{card_id}/qr.png")
def card_qr(card_id: str, request: Request):
    card, _ = find_active_card(_get_store(request), card_id)
    if not card:
        return _not_found()
    settings = getattr(request.app.state, "settings", None)
    share_url = card_public_url(card.card_id, settings.public_base_url if settings else None)
    img = qrcode.make(share_url)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return StreamingResponse(buf, media_type="image/png")
