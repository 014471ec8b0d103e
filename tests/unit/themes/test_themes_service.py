from __future__ import annotations

import base64

import pytest

from src.themedeck.themes.themes_errors import (
    ThemeAccessDeniedError,
    ThemeAlreadyExistsError,
    ThemeNotFoundError,
    ThemeValidationError,
)
from src.themedeck.themes.themes_schemas import ThemePayload
from src.themedeck.themes.themes_service import apply_promoted_urls, parse_image_data_url
from src.themedeck.uploads.session_service import UploadSessionService
from src.themedeck.uploads.uploads_errors import (
    InvalidImageError,
    PromotionSourceMissingError,
    SessionNotFoundError,
    SlotMismatchError,
)
from src.themedeck.uploads.uploads_models import SessionState
from tests.helpers.theme_payloads import (
    card_payload,
    cover_data_url,
    image_bytes,
    staged_urls,
    theme_payload,
    upload_full_card,
)

USER = "teacher-1"


async def _create_theme(services, cards: int = 1) -> str:
    session = services.sessions.create_session(USER)
    card_list = []
    for i in range(cards):
        urls = await upload_full_card(services.uploads, user_id=USER, session_id=session.id, order_index=i)
        card_list.append(card_payload(i, urls))
    payload = ThemePayload.model_validate(theme_payload(card_list, session_id=session.id))
    return await services.themes.create_theme(USER, payload)


def test_parse_image_data_url():
    mime, data = parse_image_data_url("data:image/PNG;base64,aGVsbG8=")

    assert mime == "image/png"
    assert data == b"hello"
    with pytest.raises(InvalidImageError):
        parse_image_data_url("data:image/png;base64,@@@")
    with pytest.raises(InvalidImageError):
        parse_image_data_url("https://example.com/a.png")


def test_apply_promoted_urls_rewrites_only_given_slots():
    payload = ThemePayload.model_validate(
        theme_payload([card_payload(2, staged_urls("t", 2))], session_id=None)
    )

    apply_promoted_urls(payload, {"cards[2].imageQuiz.options[1].imageUrl": "/media/themes/t/new.webp"})

    card = payload.cards[0]
    assert card.image_quiz.options[1].image_url == "/media/themes/t/new.webp"
    assert card.image_quiz.options[0].image_url == "/media/themes/t/cards/2/imageQuiz/options/0.webp"


@pytest.mark.asyncio
async def test_create_theme_uses_session_id_and_clears_session(services):
    theme_id = await _create_theme(services)

    theme = services.theme_repo.get_theme(theme_id)
    assert theme.creator_user_id == USER
    assert theme.image == f"/media/themes/{theme_id}/cover.png"
    assert (services.paths.themes / theme_id / "cover.png").exists()
    assert len(theme.cards) == 1
    assert theme.cards[0].image_url == f"/media/themes/{theme_id}/cards/0/main.webp"
    assert theme.cards[0].text_quiz["correctIndex"] == 2
    assert not theme.ready_to_play
    assert services.upload_repo.list_assets(theme_id) == []
    assert services.upload_repo.get_session(theme_id).state is SessionState.CLOSED


@pytest.mark.asyncio
async def test_create_theme_rejected_on_slot_mismatch_without_side_effects(services):
    session = services.sessions.create_session(USER)
    urls = await upload_full_card(services.uploads, user_id=USER, session_id=session.id, order_index=0)
    urls["imageUrl"] = f"/media/themes/{session.id}/cards/0/imageQuiz/options/0.webp"
    payload = ThemePayload.model_validate(theme_payload([card_payload(0, urls)], session_id=session.id))

    with pytest.raises(SlotMismatchError) as excinfo:
        await services.themes.create_theme(USER, payload)

    assert set(excinfo.value.errors) == {"cards[0].imageUrl"}
    assert not services.theme_repo.exists(session.id)
    assert services.upload_repo.get_session(session.id).is_open
    assert len(services.upload_repo.list_assets(session.id)) == 8
    assert not (services.paths.themes / session.id / "cover.png").exists()


@pytest.mark.asyncio
async def test_create_theme_requires_open_owned_create_session(services):
    payload = ThemePayload.model_validate(theme_payload([], session_id="unknown"))
    with pytest.raises(SessionNotFoundError):
        await services.themes.create_theme(USER, payload)

    edit = services.sessions.create_session(USER, theme_id="some-theme")
    payload = ThemePayload.model_validate(theme_payload([], session_id=edit.id))
    with pytest.raises(ThemeValidationError) as excinfo:
        await services.themes.create_theme(USER, payload)
    assert "theme.uploadSessionId" in excinfo.value.errors


@pytest.mark.asyncio
async def test_create_theme_rejects_small_cover(services):
    session = services.sessions.create_session(USER)
    payload = ThemePayload.model_validate(
        theme_payload([], session_id=session.id, image=cover_data_url(64, 64))
    )

    with pytest.raises(ThemeValidationError) as excinfo:
        await services.themes.create_theme(USER, payload)

    assert set(excinfo.value.errors) == {"theme.image"}
    assert not services.theme_repo.exists(session.id)
    assert services.upload_repo.get_session(session.id).is_open


@pytest.mark.asyncio
async def test_create_theme_refuses_existing_id(services, monkeypatch):
    session = services.sessions.create_session(USER)
    monkeypatch.setattr(services.theme_repo, "exists", lambda theme_id: True)
    payload = ThemePayload.model_validate(theme_payload([], session_id=session.id))

    with pytest.raises(ThemeAlreadyExistsError):
        await services.themes.create_theme(USER, payload)

    assert not (services.paths.themes / session.id).exists()


@pytest.mark.asyncio
async def test_update_promotes_only_session_slots(services):
    theme_id = await _create_theme(services)
    edit = services.sessions.create_session(USER, theme_id=theme_id)
    staged = await services.uploads.upload_asset(
        user_id=USER,
        session_id=edit.id,
        slot_key="cards[0].imageQuiz.options[1].imageUrl",
        data=image_bytes(),
        content_type="image/png",
    )
    card = card_payload(0, staged_urls(theme_id, 0))
    card["imageQuiz"]["options"][1]["imageUrl"] = staged.url
    untouched = services.paths.themes / theme_id / "cards" / "0" / "main.webp"
    untouched_mtime = untouched.stat().st_mtime_ns
    payload = ThemePayload.model_validate(
        theme_payload([card], session_id=edit.id, image=f"/media/themes/{theme_id}/cover.png")
    )

    await services.themes.update_theme(USER, theme_id, payload)

    theme = services.theme_repo.get_theme(theme_id)
    promoted_url = f"/media/themes/{theme_id}/cards/0/imageQuiz/options/1.webp"
    assert theme.cards[0].image_quiz["options"][1]["imageUrl"] == promoted_url
    assert not (services.paths.themes / edit.id / "cards" / "0" / "imageQuiz" / "options" / "1.webp").exists()
    assert untouched.stat().st_mtime_ns == untouched_mtime
    assert services.upload_repo.get_session(edit.id).state is SessionState.CLOSED
    assert services.upload_repo.list_assets(edit.id) == []


@pytest.mark.asyncio
async def test_update_checks_ownership_and_session(services):
    theme_id = await _create_theme(services, cards=0)
    payload = ThemePayload.model_validate(
        theme_payload([], session_id=theme_id, image=f"/media/themes/{theme_id}/cover.png")
    )

    with pytest.raises(ThemeNotFoundError):
        await services.themes.update_theme(USER, "missing", payload)
    with pytest.raises(ThemeAccessDeniedError):
        await services.themes.update_theme("teacher-2", theme_id, payload)
    with pytest.raises(ThemeValidationError) as excinfo:
        await services.themes.update_theme(USER, theme_id, payload)
    assert "theme.uploadSessionId" in excinfo.value.errors

    other = services.sessions.create_session(USER, theme_id="another-theme")
    payload.upload_session_id = other.id
    with pytest.raises(ThemeValidationError):
        await services.themes.update_theme(USER, theme_id, payload)


@pytest.mark.asyncio
async def test_update_replaces_cover_and_removes_old_file(services):
    theme_id = await _create_theme(services, cards=0)
    jpeg_cover = "data:image/jpeg;base64," + base64.b64encode(image_bytes(160, 160, "JPEG")).decode()
    payload = ThemePayload.model_validate(theme_payload([], session_id=None, image=jpeg_cover))

    await services.themes.update_theme(USER, theme_id, payload)

    theme = services.theme_repo.get_theme(theme_id)
    assert theme.image.startswith(f"/media/themes/{theme_id}/cover-")
    assert theme.image.endswith(".jpg")
    assert services.store.path_for_url(theme.image).exists()
    assert [p.name for p in (services.paths.themes / theme_id).iterdir()] == [theme.image.rsplit("/", 1)[1]]


@pytest.mark.asyncio
async def test_update_keeps_old_cover_when_promotion_fails(services):
    theme_id = await _create_theme(services)
    edit = services.sessions.create_session(USER, theme_id=theme_id)
    staged = await services.uploads.upload_asset(
        user_id=USER,
        session_id=edit.id,
        slot_key="cards[0].imageUrl",
        data=image_bytes(),
        content_type="image/png",
    )
    services.store.path_for_url(staged.url).unlink()
    card = card_payload(0, staged_urls(theme_id, 0))
    card["imageUrl"] = staged.url
    jpeg_cover = "data:image/jpeg;base64," + base64.b64encode(image_bytes(160, 160, "JPEG")).decode()
    payload = ThemePayload.model_validate(theme_payload([card], session_id=edit.id, image=jpeg_cover))

    with pytest.raises(PromotionSourceMissingError):
        await services.themes.update_theme(USER, theme_id, payload)

    theme = services.theme_repo.get_theme(theme_id)
    assert theme.image == f"/media/themes/{theme_id}/cover.png"
    assert (services.paths.themes / theme_id / "cover.png").exists()
    assert list((services.paths.themes / theme_id).glob("cover-*")) == []
    assert services.upload_repo.get_session(edit.id).is_open


@pytest.mark.asyncio
async def test_delete_theme_removes_rows_and_folder(services):
    theme_id = await _create_theme(services)

    with pytest.raises(ThemeAccessDeniedError):
        services.themes.delete_theme("teacher-2", theme_id)
    services.themes.delete_theme(USER, theme_id)

    assert not services.theme_repo.exists(theme_id)
    assert not (services.paths.themes / theme_id).exists()
    assert services.themes.list_my_themes(USER) == []


@pytest.mark.asyncio
async def test_commits_close_the_session_they_consume(services, monkeypatch):
    closed = []
    original = UploadSessionService.close

    def recording_close(self, session):
        original(self, session)
        closed.append((session.id, session.state))

    monkeypatch.setattr(UploadSessionService, "close", recording_close)
    theme_id = await _create_theme(services, cards=0)
    edit = services.sessions.create_session(USER, theme_id=theme_id)
    payload = ThemePayload.model_validate(
        theme_payload([], session_id=edit.id, image=f"/media/themes/{theme_id}/cover.png")
    )

    await services.themes.update_theme(USER, theme_id, payload)

    assert closed == [(theme_id, SessionState.CLOSED), (edit.id, SessionState.CLOSED)]
