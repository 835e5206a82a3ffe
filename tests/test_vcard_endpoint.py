from __future__ import annotations

import base64

import httpx
import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from api.core import config as core_config
from api.domain.vcard import fold_base64
from api.services.photo_service import PhotoInliner
from conftest import make_image, mock_client

IPHONE_SAFARI = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)


class PhotoServer:
    """httpx handler recording every photo request."""

    def __init__(self, body: bytes = b"", content_type: str = "image/jpeg", error: Exception | None = None):
        self.body = body
        self.content_type = content_type
        self.error = error
        self.requests: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(str(request.url))
        if self.error is not None:
            raise self.error
        return httpx.Response(200, content=self.body, headers={"content-type": self.content_type})


def _client(repo, server: PhotoServer | None = None) -> TestClient:
    server = server or PhotoServer()
    inliner = PhotoInliner(mock_client(server), resize=False)
    return TestClient(create_app(core_config.get_settings(), store=repo, photo_inliner=inliner))


def _lines(text: str) -> list[str]:
    return text.split("\r\n")


def test_unknown_card_returns_404(repo):
    res = _client(repo).get("/vcard/zzz999")
    assert res.status_code == 404
    assert res.json() == {"error": "Card not found or inactive"}


def test_inactive_card_returns_404(repo):
    _, card = repo.create_profile("mario", "Mario Rossi")
    repo.set_card_active(card.card_id, False)

    res = _client(repo).get(f"/vcard/{card.card_id}")

    assert res.status_code == 404
    assert res.json()["error"] == "Card not found or inactive"


def test_vcard_without_photo(repo):
    server = PhotoServer()
    _, card = repo.create_profile(
        "mario",
        "Mario Rossi",
        title="CTO",
        company="Acme",
        phone="+39 123-456 7890",
        contact_email="mario@acme.test",
    )

    res = _client(repo, server).get(f"/vcard/{card.card_id}")

    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/vcard")
    assert "charset=utf-8" in res.headers["content-type"]
    assert res.headers["content-disposition"] == 'attachment; filename="Mario_Rossi.vcf"'
    assert res.headers["cache-control"] == "no-cache, no-store, must-revalidate"
    assert res.headers["pragma"] == "no-cache"
    assert res.headers["expires"] == "0"
    lines = _lines(res.text)
    assert lines[0] == "BEGIN:VCARD"
    assert lines[-1] == "END:VCARD"
    assert "FN:Mario Rossi" in lines
    assert "ORG:Acme" in lines
    assert "TEL;TYPE=CELL:+391234567890" in lines
    assert not any(line.startswith("PHOTO") for line in lines)
    assert server.requests == []


def test_photo_fetch_failure_still_returns_vcard(repo):
    server = PhotoServer(error=httpx.ConnectError("refused"))
    _, card = repo.create_profile("mario", "Mario Rossi", photo_url="https://img.test/mario.jpg")

    res = _client(repo, server).get(f"/vcard/{card.card_id}")

    assert res.status_code == 200
    assert server.requests == ["https://img.test/mario.jpg"]
    assert "FN:Mario Rossi" in _lines(res.text)
    assert "PHOTO" not in res.text


def test_png_photo_is_embedded_and_folded(repo):
    body = make_image(size=(64, 64), fmt="PNG")
    server = PhotoServer(body, "image/png")
    _, card = repo.create_profile("mario", "Mario Rossi", photo_url="https://img.test/mario.png")

    res = _client(repo, server).get(f"/vcard/{card.card_id}")

    lines = _lines(res.text)
    start = next(i for i, line in enumerate(lines) if line.startswith("PHOTO;"))
    chunks = fold_base64(base64.b64encode(body).decode("ascii"))
    assert lines[start] == "PHOTO;ENCODING=b;TYPE=PNG:" + chunks[0]
    assert lines[start + 1:-1] == [" " + chunk for chunk in chunks[1:]]
    assert lines[-1] == "END:VCARD"


def test_relative_photo_url_uses_public_base(repo):
    server = PhotoServer(b"\xff\xd8\xff\xe0", "image/jpeg")
    _, card = repo.create_profile("mario", "Mario Rossi", photo_url="/static/uploads/abc.jpg")

    res = _client(repo, server).get(f"/vcard/{card.card_id}")

    assert res.status_code == 200
    assert server.requests == ["https://cards.test/static/uploads/abc.jpg"]
    assert "PHOTO;ENCODING=b;TYPE=JPEG:" in res.text


def test_slug_resolves_to_active_card(repo):
    profile, first = repo.create_profile("mario", "Mario Rossi")
    repo.create_card("abc123", profile.id)
    repo.set_card_active(first.card_id, False)

    res = _client(repo).get("/vcard/mario", params={"debug": "1"})

    assert res.status_code == 200
    data = res.json()
    assert data["resolvedBy"] == "slug"
    assert data["card"]["cardId"] == "abc123"
    assert data["profile"]["slug"] == "mario"
    assert data["photo"]["embedded"] is False


def test_slug_without_active_card_is_404(repo):
    _, card = repo.create_profile("mario", "Mario Rossi")
    repo.set_card_active(card.card_id, False)

    assert _client(repo).get("/vcard/mario").status_code == 404


def test_api_prefix_serves_same_document(repo):
    _, card = repo.create_profile("mario", "Mario Rossi", website="https://acme.test")
    client = _client(repo)

    plain = client.get(f"/vcard/{card.card_id}")
    api = client.get(f"/api/vcard/{card.card_id}")

    assert api.status_code == 200
    assert api.text == plain.text
    assert api.headers["content-disposition"] == plain.headers["content-disposition"]


@pytest.mark.parametrize("path", ["/vcard/", "/api/vcard/", "/vcard/%20"])
def test_missing_identifier_returns_400(repo, path):
    res = _client(repo).get(path)
    assert res.status_code == 400
    assert res.json() == {"error": "Card ID required"}


def test_store_failure_returns_500(temp_db):
    class BrokenStore:
        def get_card_by_card_id(self, card_id):
            raise RuntimeError("database is down")

    res = _client(BrokenStore()).get("/vcard/abc123")

    assert res.status_code == 500
    assert res.json() == {"error": "Failed to generate vCard"}


def test_debug_can_be_disabled(repo, monkeypatch):
    monkeypatch.setenv("VCARD_DEBUG_ENABLED", "0")
    core_config.get_settings.cache_clear()
    _, card = repo.create_profile("mario", "Mario Rossi")

    res = _client(repo).get(f"/vcard/{card.card_id}", params={"debug": "1"})

    assert res.status_code == 200
    assert res.text.startswith("BEGIN:VCARD")


def test_download_does_not_count_taps(repo):
    _, card = repo.create_profile("mario", "Mario Rossi")
    client = _client(repo)

    client.get(f"/vcard/{card.card_id}")
    client.get(f"/vcard/{card.card_id}")

    assert repo.get_card_by_card_id(card.card_id).tap_count == 0


def test_non_ascii_filename(repo):
    _, card = repo.create_profile("zoe", "Zoë Ärger")

    res = _client(repo).get(f"/vcard/{card.card_id}")

    disposition = res.headers["content-disposition"]
    assert 'filename="Zoe_Arger.vcf"' in disposition
    assert "filename*=UTF-8''Zo%C3%AB_%C3%84rger.vcf" in disposition
    assert "FN:Zoë Ärger" in _lines(res.text)


def test_delivery_plan_for_iphone_safari(repo):
    _, card = repo.create_profile("mario", "Mario Rossi")

    res = _client(repo).get(
        f"/api/vcard/{card.card_id}/delivery",
        params={"share": "1", "files": "1"},
        headers={"User-Agent": IPHONE_SAFARI},
    )

    assert res.status_code == 200
    data = res.json()
    assert data["platform"]["os"] == "ios"
    assert data["rules"] == ["native-share", "ios-safari"]
    assert data["methods"] == ["native_share", "anchor_new_tab"]
    assert data["filename"] == "Mario_Rossi.vcf"
    assert data["url"] == f"/vcard/{card.card_id}"
    assert data["revokeDelay"] == 10.0


def test_delivery_plan_unknown_card(repo):
    res = _client(repo).get("/api/vcard/zzz999/delivery")
    assert res.status_code == 404


def test_malformed_photo_url_still_returns_vcard(repo):
    server = PhotoServer(b"\xff\xd8\xff\xe0", "image/jpeg")
    _, card = repo.create_profile("mario", "Mario Rossi", photo_url="https://[::1/a.jpg")

    res = _client(repo, server).get(f"/vcard/{card.card_id}")

    assert res.status_code == 200
    assert "FN:Mario Rossi" in _lines(res.text)
    assert "PHOTO" not in res.text
    assert server.requests == []


def test_delivery_plan_store_failure_returns_json_500(temp_db):
    class BrokenStore:
        def get_card_by_card_id(self, card_id):
            raise RuntimeError("database is down")

    res = _client(BrokenStore()).get("/api/vcard/abc123/delivery")

    assert res.status_code == 500
    assert res.json() == {"error": "Failed to plan contact delivery"}
