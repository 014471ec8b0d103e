from __future__ import annotations

import pytest

from tests.helpers.theme_payloads import image_bytes

pytestmark = pytest.mark.integration


def _open_session(api_client, headers, theme_id=None) -> str:
    body = {"themeId": theme_id} if theme_id else {}
    response = api_client.post("/api/theme-assets/sessions", json=body, headers=headers)
    assert response.status_code == 200
    return response.json()["sessionId"]


def _upload(api_client, headers, session_id, slot_key, data=None, content_type="image/png"):
    return api_client.post(
        f"/api/theme-assets/sessions/{session_id}/upload",
        data={"slotKey": slot_key},
        files={"file": ("upload.png", data if data is not None else image_bytes(), content_type)},
        headers=headers,
    )


def test_requires_bearer_token(api_client, auth_headers):
    response = api_client.post("/api/theme-assets/sessions", json={})
    assert response.status_code == 401
    assert response.json()["detail"]["failure_reason"] == "missing_token"

    response = api_client.post(
        "/api/theme-assets/sessions", json={}, headers={"Authorization": "Bearer nope"}
    )
    assert response.status_code == 401
    assert response.json()["detail"]["failure_reason"] == "invalid_token"

    response = api_client.post(
        "/api/theme-assets/sessions", json={}, headers=auth_headers(role="student")
    )
    assert response.status_code == 403
    assert response.json()["detail"]["failure_reason"] == "insufficient_role"


def test_create_session_returns_camel_case_body(api_client, auth_headers):
    response = api_client.post("/api/theme-assets/sessions", json={}, headers=auth_headers())

    body = response.json()
    assert response.status_code == 200
    assert body["sessionId"]
    assert body["themeId"] is None
    assert "createdAt" in body


def test_create_edit_session_for_unknown_theme_is_not_found(api_client, auth_headers):
    response = api_client.post(
        "/api/theme-assets/sessions", json={"themeId": "missing"}, headers=auth_headers()
    )

    assert response.status_code == 404
    assert response.json()["detail"]["failure_reason"] == "theme_not_found"


def test_upload_normalizes_to_webp_and_serves_it(api_client, auth_headers):
    headers = auth_headers()
    session_id = _open_session(api_client, headers)

    response = _upload(api_client, headers, session_id, " cards[0].imageQuiz.options[2].imageUrl ")

    assert response.status_code == 200
    body = response.json()
    assert body["slotKey"] == "cards[0].imageQuiz.options[2].imageUrl"
    assert body["url"] == f"/media/themes/{session_id}/cards/0/imageQuiz/options/2.webp"
    served = api_client.get(body["url"])
    assert served.status_code == 200
    assert served.content[:4] == b"RIFF"


@pytest.mark.parametrize(
    "slot_key, data, content_type, status_code, reason",
    [
        ("cards[0].caption", None, "image/png", 400, "invalid_slot_key"),
        ("", None, "image/png", 400, "invalid_slot_key"),
        ("cards[0].imageUrl", None, "text/plain", 415, "unsupported_media_type"),
        ("cards[0].imageUrl", b"definitely not an image", "image/png", 400, "invalid_image"),
        ("cards[0].imageUrl", b"", "image/png", 400, "invalid_image"),
        ("cards[0].imageUrl", b"\0" * (2 * 1024 * 1024 + 1), "image/png", 413, "payload_too_large"),
    ],
)
def test_upload_rejections(api_client, auth_headers, slot_key, data, content_type, status_code, reason):
    headers = auth_headers()
    session_id = _open_session(api_client, headers)

    response = _upload(api_client, headers, session_id, slot_key, data, content_type)

    assert response.status_code == status_code
    assert response.json()["detail"]["failure_reason"] == reason


def test_upload_into_foreign_or_closed_session_is_not_found(api_client, auth_headers):
    owner = auth_headers("teacher-1")
    session_id = _open_session(api_client, owner)

    response = _upload(api_client, auth_headers("teacher-2"), session_id, "cards[0].imageUrl")
    assert response.status_code == 404
    assert response.json()["detail"]["failure_reason"] == "session_not_found"

    _open_session(api_client, owner)
    response = _upload(api_client, owner, session_id, "cards[0].imageUrl")
    assert response.status_code == 404


def test_delete_card_assets(api_client, auth_headers, storage_paths):
    headers = auth_headers()
    session_id = _open_session(api_client, headers)
    for key in ("cards[1].imageUrl", "cards[1].correlationQuiz.items[0].imageUrl", "cards[2].imageUrl"):
        assert _upload(api_client, headers, session_id, key).status_code == 200

    response = api_client.delete(f"/api/theme-assets/sessions/{session_id}/cards/1", headers=headers)

    assert response.status_code == 200
    assert response.json() == {"deletedCount": 2}
    assert not (storage_paths.themes / session_id / "cards" / "1").exists()
    assert (storage_paths.themes / session_id / "cards" / "2" / "main.webp").exists()


def test_delete_card_assets_validates_input(api_client, auth_headers):
    headers = auth_headers()
    session_id = _open_session(api_client, headers)

    response = api_client.delete(f"/api/theme-assets/sessions/{session_id}/cards/-1", headers=headers)
    assert response.status_code == 400
    assert response.json()["detail"]["failure_reason"] == "invalid_request"

    response = api_client.delete("/api/theme-assets/sessions/unknown/cards/0", headers=headers)
    assert response.status_code == 404
