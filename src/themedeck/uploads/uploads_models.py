"""Data structures for upload sessions and their assets."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class SessionState(StrEnum):
    """Lifecycle states of an upload session."""

    OPEN = "open"
    CLOSED = "closed"


class FailureReason(StrEnum):
    """Failure reasons enumerated in the error contract of the HTTP API."""

    INVALID_REQUEST = "invalid_request"
    INVALID_SLOT_KEY = "invalid_slot_key"
    INVALID_IMAGE = "invalid_image"
    UNSUPPORTED_MEDIA_TYPE = "unsupported_media_type"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    SESSION_NOT_FOUND = "session_not_found"
    SLOT_MISMATCH = "slot_mismatch"
    INVALID_THEME = "invalid_theme"
    THEME_NOT_FOUND = "theme_not_found"
    THEME_FORBIDDEN = "theme_forbidden"
    THEME_EXISTS = "theme_exists"
    THEME_NOT_READY = "theme_not_ready"
    PROMOTION_FAILED = "promotion_failed"
    INTERNAL_ERROR = "internal_error"


@dataclass(slots=True)
class UploadSession:
    id: str
    user_id: str
    theme_id: str | None
    state: SessionState
    created_at: datetime
    last_touched_at: datetime

    @property
    def is_open(self) -> bool:
        return self.state is SessionState.OPEN

    @property
    def staging_id(self) -> str:
        """Folder name under ``themes/`` that receives this session's uploads."""
        return self.id


@dataclass(slots=True)
class UploadAsset:
    id: str
    session_id: str
    slot_key: str
    url: str
    created_at: datetime


@dataclass(slots=True)
class AssetUpsert:
    """Outcome of recording one upload: the stored row and the URL it replaced."""

    asset: UploadAsset
    previous_url: str | None


@dataclass(slots=True)
class UploadedAsset:
    """Response of a successful slot upload."""

    slot_key: str
    url: str
