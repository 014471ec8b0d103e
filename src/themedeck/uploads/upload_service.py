"""Per-slot image uploads into a session's staging folder."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from ..media.image_codec import ImageCodec
from ..media.theme_file_store import ThemeFileStore, theme_relative_path
from .session_service import UploadSessionService
from .slot_keys import SlotKey, parse_slot_key
from .uploads_errors import InvalidImageError, PayloadTooLargeError, UnsupportedMediaError
from .uploads_models import UploadedAsset
from .uploads_repository import UploadSessionRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AssetUploadService:
    """Normalize an image, stage it under the session and record the slot."""

    sessions: UploadSessionService
    repo: UploadSessionRepository
    store: ThemeFileStore
    codec: ImageCodec
    max_bytes: int
    clock: Callable[[], datetime] = field(default=datetime.utcnow)
    log: logging.Logger = field(default_factory=lambda: logger)

    def check_request(self, slot_key: str, content_type: str | None) -> SlotKey:
        """Validate what can be checked before the body is read."""
        parsed = parse_slot_key(slot_key)
        if not content_type or not content_type.lower().startswith("image/"):
            self.log.warning(
                "uploads.upload.unsupported_media",
                extra={"content_type": content_type, "slot_key": slot_key},
            )
            raise UnsupportedMediaError(content_type or "")
        return parsed

    async def upload_asset(
        self,
        *,
        user_id: str,
        session_id: str,
        slot_key: str,
        data: bytes,
        content_type: str | None,
    ) -> UploadedAsset:
        parsed = self.check_request(slot_key, content_type)
        if not data:
            raise InvalidImageError("file is empty")
        if len(data) > self.max_bytes:
            raise PayloadTooLargeError(len(data))

        session = self.sessions.require_open(session_id, user_id)
        canonical_key = str(parsed)
        relative = theme_relative_path(session.staging_id, parsed.relative_path())
        had_record = canonical_key in self.repo.asset_urls(session.id)

        encoded = await asyncio.to_thread(self.codec.normalize, data)
        target = await asyncio.to_thread(self.store.write_bytes, relative, encoded)
        url = self.store.public_url(relative)

        try:
            outcome = self.repo.upsert_asset(
                session_id=session.id,
                slot_key=canonical_key,
                url=url,
                now=self.clock(),
            )
        except Exception:
            if not had_record:
                self.store.delete_file(target)
            raise

        if outcome.previous_url:
            previous_path = self.store.path_for_url(outcome.previous_url)
            if previous_path is not None and previous_path != target:
                self.store.delete_file(previous_path)
                self.log.info(
                    "uploads.asset.previous_removed",
                    extra={"session_id": session.id, "slot_key": canonical_key},
                )

        self.sessions.touch(session)
        self.log.info(
            "uploads.asset.stored",
            extra={
                "session_id": session.id,
                "slot_key": canonical_key,
                "size_bytes": len(encoded),
            },
        )
        return UploadedAsset(slot_key=canonical_key, url=url)
