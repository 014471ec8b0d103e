"""HTTP routes for committing and managing themes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from ..auth.auth_dependencies import require_teacher, require_user
from ..uploads.uploads_errors import (
    PathTraversalError,
    PromotionSourceMissingError,
    SessionNotFoundError,
    SlotMismatchError,
)
from ..uploads.uploads_models import FailureReason
from .themes_errors import (
    ThemeAccessDeniedError,
    ThemeAlreadyExistsError,
    ThemeNotFoundError,
    ThemeNotReadyError,
    ThemeValidationError,
)
from .themes_models import Theme, ThemePage
from .themes_schemas import (
    EventCardPayload,
    ThemeCreatedResponse,
    ThemePayload,
    ThemeResponse,
    ThemeStorageItem,
    ThemeStoragePage,
    ThemeSummaryResponse,
)
from .themes_service import ThemeService

router = APIRouter(prefix="/api/themes", tags=["themes"])
logger = logging.getLogger(__name__)


def get_theme_service(request: Request) -> ThemeService:
    try:
        return request.app.state.theme_service  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover
        raise RuntimeError("ThemeService is not configured") from exc


def _http_error(exc: Exception) -> HTTPException:
    """Map theme commit failures onto the error contract."""
    if isinstance(exc, ThemeValidationError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "status": "error",
                "failure_reason": FailureReason.INVALID_THEME.value,
                "errors": exc.errors,
            },
        )
    if isinstance(exc, SlotMismatchError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "status": "error",
                "failure_reason": FailureReason.SLOT_MISMATCH.value,
                "errors": exc.errors,
            },
        )
    if isinstance(exc, SessionNotFoundError):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"status": "error", "failure_reason": FailureReason.SESSION_NOT_FOUND.value},
        )
    if isinstance(exc, ThemeNotFoundError):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"status": "error", "failure_reason": FailureReason.THEME_NOT_FOUND.value},
        )
    if isinstance(exc, ThemeAccessDeniedError):
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"status": "error", "failure_reason": FailureReason.THEME_FORBIDDEN.value},
        )
    if isinstance(exc, ThemeAlreadyExistsError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"status": "error", "failure_reason": FailureReason.THEME_EXISTS.value},
        )
    if isinstance(exc, ThemeNotReadyError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"status": "error", "failure_reason": FailureReason.THEME_NOT_READY.value},
        )
    if isinstance(exc, PromotionSourceMissingError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "status": "error",
                "failure_reason": FailureReason.PROMOTION_FAILED.value,
                "details": str(exc),
            },
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"status": "error", "failure_reason": FailureReason.INTERNAL_ERROR.value},
    )


_HANDLED = (
    ThemeValidationError,
    SlotMismatchError,
    SessionNotFoundError,
    ThemeNotFoundError,
    ThemeAccessDeniedError,
    ThemeAlreadyExistsError,
    PromotionSourceMissingError,
    PathTraversalError,
)


def _summary(theme: Theme) -> ThemeSummaryResponse:
    return ThemeSummaryResponse(
        id=theme.id,
        name=theme.name,
        image=theme.image,
        resume=theme.resume,
        recommendation=theme.recommendation,
        ready_to_play=theme.ready_to_play,
        card_count=len(theme.cards),
        updated_at=theme.updated_at,
    )


def _details(theme: Theme) -> ThemeResponse:
    return ThemeResponse(
        **_summary(theme).model_dump(),
        creator_user_id=theme.creator_user_id,
        created_at=theme.created_at,
        cards=[
            EventCardPayload(
                order_index=card.order_index,
                year=card.year,
                era=card.era,
                caption=card.caption,
                image_url=card.image_url,
                image_quiz=card.image_quiz or None,
                text_quiz=card.text_quiz or None,
                true_false_quiz=card.true_false_quiz or None,
                correlation_quiz=card.correlation_quiz or None,
            )
            for card in theme.cards
        ],
    )


def _storage_page(page: ThemePage) -> ThemeStoragePage:
    return ThemeStoragePage(
        items=[
            ThemeStorageItem(
                id=theme.id,
                name=theme.name,
                image=theme.image,
                resume=theme.resume,
                recommendation=theme.recommendation,
                ready_to_play=theme.ready_to_play,
                creator_user_id=theme.creator_user_id,
                created_at=theme.created_at,
                number_of_cards=len(theme.cards),
            )
            for theme in page.items
        ],
        page=page.page,
        page_size=page.page_size,
        total_count=page.total_count,
        total_pages=page.total_pages,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_theme(
    payload: ThemePayload,
    user_id: str = Depends(require_teacher),
    service: ThemeService = Depends(get_theme_service),
) -> ThemeCreatedResponse:
    try:
        theme_id = await service.create_theme(user_id, payload)
    except _HANDLED as exc:
        if isinstance(exc, PathTraversalError):
            logger.exception("themes.create.path_traversal", extra={"user_id": user_id})
        raise _http_error(exc) from exc
    return ThemeCreatedResponse(id=theme_id)


@router.get("/mine")
def list_my_themes(
    user_id: str = Depends(require_teacher),
    service: ThemeService = Depends(get_theme_service),
) -> list[ThemeSummaryResponse]:
    return [_summary(theme) for theme in service.list_my_themes(user_id)]


@router.get("/storage")
def list_storage(
    page: int = Query(1),
    page_size: int = Query(20, alias="pageSize"),
    user_id: str = Depends(require_user),
    service: ThemeService = Depends(get_theme_service),
) -> ThemeStoragePage:
    return _storage_page(service.list_storage(page, page_size))


@router.get("/{theme_id}/download")
def download_theme(
    theme_id: str,
    user_id: str = Depends(require_user),
    service: ThemeService = Depends(get_theme_service),
) -> ThemeResponse:
    """Full theme with cards in play order, for game clients."""
    try:
        theme = service.download_theme(theme_id)
    except (ThemeNotFoundError, ThemeNotReadyError) as exc:
        raise _http_error(exc) from exc
    return _details(theme)


@router.get("/{theme_id}")
def fetch_theme(
    theme_id: str,
    user_id: str = Depends(require_teacher),
    service: ThemeService = Depends(get_theme_service),
) -> ThemeResponse:
    try:
        theme = service.get_theme(user_id, theme_id)
    except (ThemeNotFoundError, ThemeAccessDeniedError) as exc:
        raise _http_error(exc) from exc
    return _details(theme)


@router.put("/{theme_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_theme(
    theme_id: str,
    payload: ThemePayload,
    user_id: str = Depends(require_teacher),
    service: ThemeService = Depends(get_theme_service),
) -> Response:
    try:
        await service.update_theme(user_id, theme_id, payload)
    except _HANDLED as exc:
        if isinstance(exc, (PathTraversalError, PromotionSourceMissingError)):
            logger.exception(
                "themes.update.promotion_failed",
                extra={"user_id": user_id, "theme_id": theme_id},
            )
        raise _http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{theme_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_theme(
    theme_id: str,
    user_id: str = Depends(require_teacher),
    service: ThemeService = Depends(get_theme_service),
) -> Response:
    try:
        service.delete_theme(user_id, theme_id)
    except (ThemeNotFoundError, ThemeAccessDeniedError) as exc:
        raise _http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
