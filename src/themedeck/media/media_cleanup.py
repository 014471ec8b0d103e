"""Deletion of staged card files, theme folders and abandoned staging data."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ..themes.themes_repository import ThemeRepository
from ..uploads.session_service import UploadSessionService
from ..uploads.slot_keys import card_slot_keys
from ..uploads.uploads_models import UploadSession
from ..uploads.uploads_repository import UploadSessionRepository
from .theme_file_store import ThemeFileStore, theme_relative_path

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AssetCleanup:
    """Best-effort removal of files; individual failures are logged, not raised."""

    sessions: UploadSessionService
    repo: UploadSessionRepository
    themes: ThemeRepository
    store: ThemeFileStore
    log: logging.Logger = field(default_factory=lambda: logger)

    def delete_card_assets(self, user_id: str, session_id: str, card_index: int) -> int:
        """Drop the staged images of one card; returns the number of removed rows."""
        session = self.sessions.require_open(session_id, user_id)
        keys = [str(key) for key in card_slot_keys(card_index)]
        removed = self.repo.delete_assets(session.id, keys)

        for asset in removed:
            try:
                self.store.delete_url(asset.url)
            except OSError as exc:
                self.log.warning(
                    "media.cleanup.file_delete_failed",
                    extra={"session_id": session.id, "slot_key": asset.slot_key, "error": str(exc)},
                )

        card_dir = theme_relative_path(session.staging_id, f"cards/{card_index}")
        try:
            self.store.remove_tree(card_dir)
        except OSError as exc:
            self.log.warning(
                "media.cleanup.card_dir_delete_failed",
                extra={"session_id": session.id, "card_index": card_index, "error": str(exc)},
            )

        self.sessions.touch(session)
        self.log.info(
            "media.cleanup.card_assets_removed",
            extra={"session_id": session.id, "card_index": card_index, "deleted": len(removed)},
        )
        return len(removed)

    def delete_theme_folder(self, theme_id: str) -> bool:
        try:
            removed = self.store.remove_tree(theme_relative_path(theme_id))
        except OSError as exc:
            self.log.warning(
                "media.cleanup.theme_dir_delete_failed",
                extra={"theme_id": theme_id, "error": str(exc)},
            )
            return False
        if removed:
            self.log.info("media.cleanup.theme_dir_removed", extra={"theme_id": theme_id})
        return removed

    def stale_sessions(
        self,
        reference_time: datetime | None = None,
        older_than: timedelta = timedelta(hours=48),
    ) -> list[UploadSession]:
        """Closed sessions past retention whose staging data may be purged.

        A closed create session whose id became a theme id is the theme
        itself and is left out.
        """
        now = reference_time or datetime.utcnow()
        stale = self.repo.list_closed_sessions(now - older_than)
        committed = self.themes.existing_ids(
            item.id for item in stale if item.theme_id is None
        )
        return [item for item in stale if not (item.theme_id is None and item.id in committed)]

    def purge_stale_staging(
        self,
        reference_time: datetime | None = None,
        older_than: timedelta = timedelta(hours=48),
    ) -> int:
        """Remove staging folders and rows of :meth:`stale_sessions`."""
        purged = 0
        for session in self.stale_sessions(reference_time, older_than):
            try:
                self.store.remove_tree(theme_relative_path(session.staging_id))
            except OSError as exc:
                self.log.warning(
                    "media.cleanup.staging_delete_failed",
                    extra={"session_id": session.id, "error": str(exc)},
                )
                continue
            self.repo.delete_session(session.id)
            purged += 1
            self.log.info(
                "media.cleanup.staging_purged",
                extra={"session_id": session.id, "theme_id": session.theme_id},
            )
        return purged
