"""Theme commit orchestration: validate, promote staged files, persist."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import re
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from ..exceptions import IntegrityConstraintViolation
from ..media.image_codec import COVER_MIME_TYPES, ImageCodec
from ..media.media_cleanup import AssetCleanup
from ..media.theme_file_store import ThemeFileStore, theme_relative_path
from ..uploads import slot_validation
from ..uploads.promotion import AssetPromoter
from ..uploads.session_service import UploadSessionService
from ..uploads.slot_keys import CardImage, CorrelationItem, ImageQuizOption
from ..uploads.uploads_errors import InvalidImageError, SlotMismatchError
from ..uploads.uploads_models import UploadSession
from ..uploads.uploads_repository import UploadSessionRepository
from . import themes_validation
from .themes_errors import (
    ThemeAccessDeniedError,
    ThemeAlreadyExistsError,
    ThemeNotFoundError,
    ThemeNotReadyError,
    ThemeValidationError,
)
from .themes_models import EventCard, Theme, ThemePage
from .themes_repository import ThemeRepository
from .themes_schemas import ThemePayload

logger = logging.getLogger(__name__)

STORAGE_MAX_PAGE_SIZE = 50

_DATA_URL = re.compile(r"data:(image/[a-zA-Z0-9.+-]+);base64,(.*)", re.DOTALL)


def parse_image_data_url(value: str) -> tuple[str, bytes]:
    """Split ``data:image/...;base64,...`` into ``(mime, bytes)``."""
    match = _DATA_URL.fullmatch(value.strip())
    if match is None:
        raise InvalidImageError("invalid image data URL")
    try:
        data = base64.b64decode(match.group(2), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidImageError("image data URL is not valid base64") from exc
    return match.group(1).lower(), data


def apply_promoted_urls(payload: ThemePayload, urls: dict[str, str]) -> None:
    """Rewrite image fields of ``payload`` in place from ``slot_key -> url``."""
    for card in payload.cards:
        i = card.order_index
        card.image_url = urls.get(str(CardImage(i)), card.image_url)
        if card.image_quiz:
            for k, option in enumerate(card.image_quiz.options):
                option.image_url = urls.get(str(ImageQuizOption(i, k)), option.image_url)
        if card.correlation_quiz:
            for k, item in enumerate(card.correlation_quiz.items):
                item.image_url = urls.get(str(CorrelationItem(i, k)), item.image_url)


def _clean(value: str | None) -> str | None:
    return value.strip() if value is not None else None


def _cards_from_payload(payload: ThemePayload) -> list[EventCard]:
    cards = []
    for card in sorted(payload.cards, key=lambda item: item.order_index):
        cards.append(
            EventCard(
                order_index=card.order_index,
                year=card.year,
                era=card.era or "",
                caption=(card.caption or "").strip(),
                image_url=(card.image_url or "").strip(),
                image_quiz=card.image_quiz.model_dump(by_alias=True) if card.image_quiz else {},
                text_quiz=card.text_quiz.model_dump(by_alias=True) if card.text_quiz else {},
                true_false_quiz=(
                    card.true_false_quiz.model_dump(by_alias=True) if card.true_false_quiz else {}
                ),
                correlation_quiz=(
                    card.correlation_quiz.model_dump(by_alias=True) if card.correlation_quiz else {}
                ),
            )
        )
    return cards


@dataclass(slots=True)
class ThemeService:
    """Commit themes assembled through upload sessions."""

    themes: ThemeRepository
    sessions: UploadSessionService
    uploads: UploadSessionRepository
    store: ThemeFileStore
    codec: ImageCodec
    promoter: AssetPromoter
    cleanup: AssetCleanup
    clock: Callable[[], datetime] = field(default=datetime.utcnow)
    log: logging.Logger = field(default_factory=lambda: logger)

    @property
    def public_base(self) -> str:
        return self.store.paths.public_base

    async def create_theme(self, user_id: str, payload: ThemePayload) -> str:
        """Persist a new theme whose id is the upload session id."""
        errors = themes_validation.validate_for_create(payload)
        if errors:
            raise ThemeValidationError(errors)

        session = self.sessions.require_open(payload.upload_session_id.strip(), user_id)
        if session.theme_id is not None:
            raise ThemeValidationError(
                {"theme.uploadSessionId": "An edit session cannot be used to create a theme."}
            )

        assets = self.uploads.asset_urls(session.id)
        expected = slot_validation.build_expected_slots(payload)
        slot_errors = slot_validation.validate_for_create(expected, assets, self.public_base)
        if slot_errors:
            self.log.warning(
                "themes.create.slot_mismatch",
                extra={"session_id": session.id, "errors": slot_errors},
            )
            raise SlotMismatchError(slot_errors)

        theme_id = session.id
        if self.themes.exists(theme_id):
            raise ThemeAlreadyExistsError(theme_id)

        cover_url, cover_path = await self._write_cover(theme_id, payload.image, "cover")
        theme = Theme(
            id=theme_id,
            creator_user_id=user_id,
            name=payload.name.strip(),
            image=cover_url,
            resume=_clean(payload.resume),
            recommendation=_clean(payload.recommendation),
            cards=_cards_from_payload(payload),
        )
        try:
            self.themes.create_from_session(theme, session_id=session.id, now=self.clock())
        except IntegrityConstraintViolation as exc:
            self.store.delete_file(cover_path)
            raise ThemeAlreadyExistsError(theme_id) from exc
        except Exception:
            self.store.delete_file(cover_path)
            raise
        self.sessions.close(session)

        self.log.info(
            "themes.created",
            extra={"theme_id": theme_id, "user_id": user_id, "cards": len(theme.cards)},
        )
        return theme_id

    async def update_theme(self, user_id: str, theme_id: str, payload: ThemePayload) -> None:
        """Replace a theme's content, promoting images staged in the session."""
        errors = themes_validation.validate_for_update(payload, self.public_base)
        if errors:
            raise ThemeValidationError(errors)

        current = self._owned_theme(user_id, theme_id)

        session: UploadSession | None = None
        assets: dict[str, str] = {}
        session_id = _clean(payload.upload_session_id) or None
        if session_id is not None:
            if session_id.casefold() == theme_id.casefold():
                raise ThemeValidationError(
                    {"theme.uploadSessionId": "uploadSessionId must differ from the theme id."}
                )
            session = self.sessions.require_open(session_id, user_id)
            if session.theme_id not in (None, theme_id):
                raise ThemeValidationError(
                    {"theme.uploadSessionId": "The session belongs to another theme."}
                )
            assets = self.uploads.asset_urls(session.id)

        expected = slot_validation.build_expected_slots(payload)
        result = slot_validation.validate_for_update(
            expected,
            theme_id=theme_id,
            session_id=session.id if session else None,
            assets=assets,
            public_base=self.public_base,
        )
        if not result.ok:
            self.log.warning(
                "themes.update.slot_mismatch",
                extra={"theme_id": theme_id, "errors": result.errors},
            )
            raise SlotMismatchError(result.errors)

        cover_url = payload.image.strip()
        new_cover: Path | None = None
        if themes_validation.is_data_url(cover_url):
            # a fresh name, so the live cover stays intact until the commit succeeds
            cover_url, new_cover = await self._write_cover(
                theme_id, cover_url, f"cover-{uuid.uuid4().hex[:12]}"
            )

        try:
            if session is not None and result.slots_requiring_promotion:
                sources = {key: assets[key] for key in sorted(result.slots_requiring_promotion)}
                promoted = await asyncio.to_thread(self.promoter.promote, session.id, theme_id, sources)
                apply_promoted_urls(payload, promoted)

            theme = Theme(
                id=theme_id,
                creator_user_id=current.creator_user_id,
                name=payload.name.strip(),
                image=cover_url,
                resume=_clean(payload.resume),
                recommendation=_clean(payload.recommendation),
                cards=_cards_from_payload(payload),
            )
            # TODO: files promoted above stay in the theme folder if this commit fails
            self.themes.update_theme(theme, session_id=session.id if session else None, now=self.clock())
        except BaseException:
            if new_cover is not None:
                self.store.delete_file(new_cover)
            raise

        if new_cover is not None:
            self._discard_cover(current.image, keep=new_cover)
        if session is not None:
            self.sessions.close(session)
        self.log.info(
            "themes.updated",
            extra={
                "theme_id": theme_id,
                "session_id": session.id if session else None,
                "promoted": len(result.slots_requiring_promotion),
            },
        )

    def get_theme(self, user_id: str, theme_id: str) -> Theme:
        return self._owned_theme(user_id, theme_id)

    def list_my_themes(self, user_id: str) -> Sequence[Theme]:
        return self.themes.list_by_creator(user_id)

    def list_storage(self, page: int = 1, page_size: int = 20) -> ThemePage:
        """Catalog of ready-to-play themes from every author.

        ``page`` is raised to 1 and ``page_size`` clamped to 1..50.
        """
        page = max(page, 1)
        page_size = min(max(page_size, 1), STORAGE_MAX_PAGE_SIZE)
        items, total = self.themes.list_ready(offset=(page - 1) * page_size, limit=page_size)
        return ThemePage(items=items, page=page, page_size=page_size, total_count=total)

    def download_theme(self, theme_id: str) -> Theme:
        try:
            theme = self.themes.get_theme(theme_id)
        except KeyError:
            raise ThemeNotFoundError(theme_id) from None
        if not theme.ready_to_play:
            raise ThemeNotReadyError(theme_id)
        return theme

    def delete_theme(self, user_id: str, theme_id: str) -> None:
        self._owned_theme(user_id, theme_id)
        self.themes.delete_theme(theme_id)
        self.cleanup.delete_theme_folder(theme_id)
        self.log.info("themes.deleted", extra={"theme_id": theme_id, "user_id": user_id})

    def _owned_theme(self, user_id: str, theme_id: str) -> Theme:
        try:
            theme = self.themes.get_theme(theme_id)
        except KeyError:
            raise ThemeNotFoundError(theme_id) from None
        if theme.creator_user_id != user_id:
            raise ThemeAccessDeniedError(theme_id)
        return theme

    async def _write_cover(self, theme_id: str, data_url: str, stem: str) -> tuple[str, Path]:
        """Decode, re-encode and store a cover; returns ``(url, path)``."""
        try:
            mime, data = parse_image_data_url(data_url)
            if mime not in COVER_MIME_TYPES:
                raise InvalidImageError("unsupported image format (jpeg, png or webp only)")
            encoded, suffix = await asyncio.to_thread(self.codec.encode_cover, data, mime)
        except InvalidImageError as exc:
            raise ThemeValidationError({"theme.image": str(exc)}) from exc

        relative = theme_relative_path(theme_id, f"{stem}{suffix}")
        target = await asyncio.to_thread(self.store.write_bytes, relative, encoded)
        return self.store.public_url(relative), target

    def _discard_cover(self, previous_url: str | None, *, keep: Path) -> None:
        previous = self.store.path_for_url(previous_url)
        if previous is None or previous == keep:
            return
        try:
            self.store.delete_file(previous)
        except OSError as exc:
            self.log.warning(
                "themes.cover.delete_failed",
                extra={"path": str(previous), "error": str(exc)},
            )
