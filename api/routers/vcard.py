from __future__ import annotations

import unicodedata
from urllib.parse import quote

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from api.core.config import get_settings
from api.domain.delivery import detect_platform, matching_rules, plan_delivery
from api.domain.vcard import vcard_filename
from api.services.vcard_service import (
    CardNotFoundError,
    InvalidIdentifierError,
    ProfileNotFoundError,
    VCardService,
)

router = APIRouter(prefix="", tags=["vcard"])

VCARD_MEDIA_TYPE = "text/vcard; charset=utf-8"
NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def _get_vcard_service(request: Request) -> VCardService:
    svc = getattr(getattr(request.app, "state", None), "vcard_service", None)
    if not svc:
        raise RuntimeError("VCardService not configured")
    return svc


def _get_settings(request: Request):
    return getattr(getattr(request.app, "state", None), "settings", None) or get_settings()


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def content_disposition(filename: str) -> str:
    """attachment header with an ASCII filename plus RFC 5987 form when needed."""
    ascii_name = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    ascii_name = ascii_name.replace('"', "").replace("\\", "")
    if not ascii_name or ascii_name.startswith("."):
        ascii_name = "contact.vcf"
    value = f'attachment; filename="{ascii_name}"'
    if ascii_name != filename:
        value += f"; filename*=UTF-8''{quote(filename)}"
    return value


def _vcard_response(request: Request, card_id: str, debug: str) -> Response:
    svc = _get_vcard_service(request)
    try:
        result = svc.build(card_id)
    except InvalidIdentifierError as exc:
        return _error(400, str(exc))
    except (CardNotFoundError, ProfileNotFoundError) as exc:
        return _error(404, str(exc))
    except Exception:
        svc.logger.exception("vcard.failed", extra={"identifier": card_id})
        return _error(500, "Failed to generate vCard")

    if _truthy(debug) and _get_settings(request).vcard_debug_enabled:
        return JSONResponse(svc.diagnostics(result, card_id), headers=NO_CACHE_HEADERS)

    headers = dict(NO_CACHE_HEADERS)
    headers["Content-Disposition"] = content_disposition(result.filename)
    return Response(result.document, media_type=VCARD_MEDIA_TYPE, headers=headers)


@router.get("/vcard/")
@router.get("/api/vcard/")
def vcard_missing_id():
    return _error(400, "Card ID required")


@router.get("/vcard/{card_id}")
def vcard(card_id: str, request: Request, debug: str = ""):
    return _vcard_response(request, card_id, debug)


@router.get("/api/vcard/{card_id}")
def vcard_api(card_id: str, request: Request, debug: str = ""):
    return _vcard_response(request, card_id, debug)


@router.get("/api/vcard/{card_id}/delivery")
def vcard_delivery_plan(card_id: str, request: Request, share: str = "", files: str = ""):
    """
    Contact-save plan for the requesting browser. The card page script reports
    whether navigator.share / canShare({files}) exist; the table decides the rest.
    """
    svc = _get_vcard_service(request)
    try:
        card, profile = svc.resolve_card(card_id)
    except InvalidIdentifierError as exc:
        return _error(400, str(exc))
    except (CardNotFoundError, ProfileNotFoundError) as exc:
        return _error(404, str(exc))
    except Exception:
        svc.logger.exception("vcard.delivery.failed", extra={"identifier": card_id})
        return _error(500, "Failed to plan contact delivery")

    platform = detect_platform(
        request.headers.get("user-agent"),
        share_available=_truthy(share),
        can_share_files=_truthy(files),
    )
    return JSONResponse(
        {
            "platform": platform.to_dict(),
            "rules": [rule.name for rule in matching_rules(platform)],
            "methods": [method.value for method in plan_delivery(platform)],
            "filename": vcard_filename(profile.display_name),
            "url": f"/vcard/{quote(card.card_id)}",
            "revokeDelay": _get_settings(request).blob_revoke_delay,
        },
        headers=NO_CACHE_HEADERS,
    )
