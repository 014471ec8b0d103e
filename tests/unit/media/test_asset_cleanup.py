from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from src.themedeck.themes.themes_models import Theme
from src.themedeck.uploads.uploads_errors import SessionNotFoundError
from tests.helpers.theme_payloads import upload_full_card


@pytest.mark.asyncio
async def test_delete_card_assets_removes_only_that_card(services):
    session = services.sessions.create_session("teacher-1")
    await upload_full_card(services.uploads, user_id="teacher-1", session_id=session.id, order_index=0)
    await upload_full_card(services.uploads, user_id="teacher-1", session_id=session.id, order_index=1)

    deleted = services.cleanup.delete_card_assets("teacher-1", session.id, 0)

    assert deleted == 8
    remaining = services.upload_repo.list_assets(session.id)
    assert len(remaining) == 8
    assert all(asset.slot_key.startswith("cards[1]") for asset in remaining)
    staging = services.paths.themes / session.id / "cards"
    assert not (staging / "0").exists()
    assert len([p for p in (staging / "1").rglob("*.webp")]) == 8


@pytest.mark.asyncio
async def test_delete_card_assets_tolerates_missing_files(services):
    session = services.sessions.create_session("teacher-1")
    await upload_full_card(services.uploads, user_id="teacher-1", session_id=session.id, order_index=3)
    (services.paths.themes / session.id / "cards" / "3" / "main.webp").unlink()

    assert services.cleanup.delete_card_assets("teacher-1", session.id, 3) == 8
    assert services.cleanup.delete_card_assets("teacher-1", session.id, 3) == 0


def test_delete_card_assets_requires_owned_open_session(services):
    session = services.sessions.create_session("teacher-1")

    with pytest.raises(SessionNotFoundError):
        services.cleanup.delete_card_assets("teacher-2", session.id, 0)


def test_delete_theme_folder(services):
    services.store.write_bytes("themes/theme-1/cards/0/main.webp", b"x")

    assert services.cleanup.delete_theme_folder("theme-1") is True
    assert not (services.paths.themes / "theme-1").exists()
    assert services.cleanup.delete_theme_folder("theme-1") is False


def test_purge_stale_staging_keeps_committed_themes(services):
    abandoned = services.sessions.create_session("teacher-1")
    services.store.write_bytes(f"themes/{abandoned.id}/cards/0/main.webp", b"x")
    committed = services.sessions.create_session("teacher-1")
    services.store.write_bytes(f"themes/{committed.id}/cards/0/main.webp", b"x")
    services.theme_repo.create_from_session(
        Theme(
            id=committed.id,
            creator_user_id="teacher-1",
            name="Committed",
            image="/media/themes/x/cover.png",
            resume="r",
            recommendation="r",
        ),
        session_id=committed.id,
        now=datetime.utcnow(),
    )
    edit = services.sessions.create_session("teacher-1", theme_id=committed.id)
    services.store.write_bytes(f"themes/{edit.id}/cards/0/main.webp", b"x")
    services.sessions.close(edit)
    still_open = services.sessions.create_session("teacher-2")
    services.store.write_bytes(f"themes/{still_open.id}/cards/0/main.webp", b"x")

    purged = services.cleanup.purge_stale_staging(
        datetime.utcnow() + timedelta(hours=49), timedelta(hours=48)
    )

    assert purged == 2
    assert not (services.paths.themes / abandoned.id).exists()
    assert not (services.paths.themes / edit.id).exists()
    assert services.upload_repo.get_session(abandoned.id) is None
    assert (services.paths.themes / committed.id).exists()
    assert (services.paths.themes / still_open.id).exists()


def test_purge_respects_retention_window(services):
    session = services.sessions.create_session("teacher-1")
    services.sessions.close(session)

    assert services.cleanup.purge_stale_staging(datetime.utcnow(), timedelta(hours=48)) == 0
    assert services.upload_repo.get_session(session.id) is not None


def test_stale_sessions_lists_without_deleting(services):
    abandoned = services.sessions.create_session("teacher-1")
    services.store.write_bytes(f"themes/{abandoned.id}/cards/0/main.webp", b"x")
    committed = services.sessions.create_session("teacher-1")
    services.theme_repo.create_from_session(
        Theme(
            id=committed.id,
            creator_user_id="teacher-1",
            name="Committed",
            image="/media/themes/x/cover.png",
            resume=None,
            recommendation=None,
        ),
        session_id=committed.id,
        now=datetime.utcnow(),
    )
    later = datetime.utcnow() + timedelta(hours=49)

    stale = services.cleanup.stale_sessions(later, timedelta(hours=48))

    assert [session.id for session in stale] == [abandoned.id]
    assert (services.paths.themes / abandoned.id / "cards" / "0" / "main.webp").exists()
    assert services.cleanup.purge_stale_staging(later, timedelta(hours=48)) == 1
    assert services.cleanup.stale_sessions(later, timedelta(hours=48)) == []
