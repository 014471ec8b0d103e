"""HTTP routes for upload sessions and per-slot image uploads."""

from __future__ import annotations

import logging

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Request,
    UploadFile,
    status,
)

from ..auth.auth_dependencies import require_teacher
from ..media.media_cleanup import AssetCleanup
from ..themes.themes_repository import ThemeRepository
from .session_service import UploadSessionService
from .upload_reader import UploadReader
from .upload_service import AssetUploadService
from .uploads_errors import (
    InvalidImageError,
    InvalidSlotKeyError,
    PayloadTooLargeError,
    SessionNotFoundError,
    UnsupportedMediaError,
    UploadReadError,
)
from .uploads_models import FailureReason
from .uploads_schemas import (
    CreateSessionRequest,
    DeleteCardAssetsResponse,
    SessionResponse,
    UploadResponse,
)

router = APIRouter(prefix="/api/theme-assets", tags=["theme-assets"])
logger = logging.getLogger(__name__)


def get_session_service(request: Request) -> UploadSessionService:
    try:
        return request.app.state.session_service  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover
        raise RuntimeError("UploadSessionService is not configured") from exc


def get_upload_service(request: Request) -> AssetUploadService:
    try:
        return request.app.state.upload_service  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover
        raise RuntimeError("AssetUploadService is not configured") from exc


def get_upload_reader(request: Request) -> UploadReader:
    try:
        return request.app.state.upload_reader  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover
        raise RuntimeError("UploadReader is not configured") from exc


def get_asset_cleanup(request: Request) -> AssetCleanup:
    try:
        return request.app.state.asset_cleanup  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover
        raise RuntimeError("AssetCleanup is not configured") from exc


def get_theme_repo(request: Request) -> ThemeRepository:
    try:
        return request.app.state.theme_repo  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover
        raise RuntimeError("ThemeRepository is not configured") from exc


def _error(status_code: int, reason: FailureReason, details: str | None = None) -> HTTPException:
    detail: dict[str, object] = {"status": "error", "failure_reason": reason.value}
    if details:
        detail["details"] = details
    return HTTPException(status_code=status_code, detail=detail)


def _session_not_found() -> HTTPException:
    return _error(status.HTTP_404_NOT_FOUND, FailureReason.SESSION_NOT_FOUND)


@router.post("/sessions")
def create_session(
    payload: CreateSessionRequest | None = None,
    user_id: str = Depends(require_teacher),
    sessions: UploadSessionService = Depends(get_session_service),
    theme_repo: ThemeRepository = Depends(get_theme_repo),
) -> SessionResponse:
    """Open a staging session, closing the caller's previous one."""
    theme_id = payload.theme_id if payload else None
    if theme_id:
        try:
            theme = theme_repo.get_theme(theme_id)
        except KeyError:
            theme = None
        if theme is None or theme.creator_user_id != user_id:
            logger.warning(
                "uploads.session.theme_not_owned",
                extra={"user_id": user_id, "theme_id": theme_id},
            )
            raise _error(status.HTTP_404_NOT_FOUND, FailureReason.THEME_NOT_FOUND)
    session = sessions.create_session(user_id, theme_id or None)
    return SessionResponse(
        session_id=session.id,
        theme_id=session.theme_id,
        created_at=session.created_at,
    )


@router.post("/sessions/{session_id}/upload")
async def upload_asset(
    session_id: str,
    slot_key: str = Form("", alias="slotKey"),
    file: UploadFile | None = File(None),
    user_id: str = Depends(require_teacher),
    service: AssetUploadService = Depends(get_upload_service),
    reader: UploadReader = Depends(get_upload_reader),
) -> UploadResponse:
    """Store one image for ``slotKey`` in the session's staging folder."""
    slot_key = slot_key.strip()
    if file is None:
        raise _error(status.HTTP_400_BAD_REQUEST, FailureReason.INVALID_REQUEST, "file is required")

    try:
        service.check_request(slot_key, file.content_type)
        data = await reader.read(file)
        stored = await service.upload_asset(
            user_id=user_id,
            session_id=session_id,
            slot_key=slot_key,
            data=data,
            content_type=file.content_type,
        )
    except InvalidSlotKeyError as exc:
        raise _error(status.HTTP_400_BAD_REQUEST, FailureReason.INVALID_SLOT_KEY, str(exc)) from exc
    except UnsupportedMediaError as exc:
        raise _error(status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, FailureReason.UNSUPPORTED_MEDIA_TYPE) from exc
    except PayloadTooLargeError as exc:
        raise _error(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, FailureReason.PAYLOAD_TOO_LARGE) from exc
    except (InvalidImageError, UploadReadError) as exc:
        raise _error(status.HTTP_400_BAD_REQUEST, FailureReason.INVALID_IMAGE, str(exc)) from exc
    except SessionNotFoundError as exc:
        raise _session_not_found() from exc

    return UploadResponse(slot_key=stored.slot_key, url=stored.url)


@router.delete("/sessions/{session_id}/cards/{card_index}")
def delete_card_assets(
    session_id: str,
    card_index: int,
    user_id: str = Depends(require_teacher),
    cleanup: AssetCleanup = Depends(get_asset_cleanup),
) -> DeleteCardAssetsResponse:
    if card_index < 0:
        raise _error(status.HTTP_400_BAD_REQUEST, FailureReason.INVALID_REQUEST, "cardIndex must be >= 0")
    try:
        deleted = cleanup.delete_card_assets(user_id, session_id, card_index)
    except SessionNotFoundError as exc:
        raise _session_not_found() from exc
    return DeleteCardAssetsResponse(deleted_count=deleted)
