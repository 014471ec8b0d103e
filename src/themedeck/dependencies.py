"""Dependency wiring helpers."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from .auth.auth_service import AuthService
from .config import AppConfig
from .media.image_codec import ImageCodec
from .media.media_cleanup import AssetCleanup
from .media.public_media_links import base_path_of
from .media.theme_file_store import ThemeFileStore
from .themes.themes_api import router as themes_router
from .themes.themes_repository import ThemeRepository
from .themes.themes_service import ThemeService
from .uploads.promotion import AssetPromoter
from .uploads.session_service import UploadSessionService
from .uploads.upload_reader import UploadReader
from .uploads.upload_service import AssetUploadService
from .uploads.uploads_api import router as uploads_router
from .uploads.uploads_repository import UploadSessionRepository


def include_routers(app: FastAPI, config: AppConfig) -> None:
    """Mount module routers and attach services."""
    upload_repo = UploadSessionRepository(config.session_factory)
    theme_repo = ThemeRepository(config.session_factory)
    store = ThemeFileStore(config.storage)
    codec = ImageCodec(
        max_dimension=config.upload_limits.max_dimension,
        webp_quality=config.upload_limits.webp_quality,
    )

    session_service = UploadSessionService(repo=upload_repo)
    upload_service = AssetUploadService(
        sessions=session_service,
        repo=upload_repo,
        store=store,
        codec=codec,
        max_bytes=config.upload_limits.max_bytes,
    )
    asset_cleanup = AssetCleanup(
        sessions=session_service,
        repo=upload_repo,
        themes=theme_repo,
        store=store,
    )
    theme_service = ThemeService(
        themes=theme_repo,
        sessions=session_service,
        uploads=upload_repo,
        store=store,
        codec=codec,
        promoter=AssetPromoter(store),
        cleanup=asset_cleanup,
    )

    app.state.config = config
    app.state.upload_repo = upload_repo
    app.state.theme_repo = theme_repo
    app.state.session_service = session_service
    app.state.upload_service = upload_service
    app.state.upload_reader = UploadReader(config.upload_limits)
    app.state.asset_cleanup = asset_cleanup
    app.state.theme_service = theme_service
    app.state.auth_service = AuthService(signing_key=config.jwt_signing_key)

    app.include_router(uploads_router)
    app.include_router(themes_router)

    # absolute public bases are served by something else (CDN, reverse proxy)
    public_base = config.storage.public_base
    if public_base.startswith("/") and base_path_of(public_base):
        app.mount(
            base_path_of(public_base),
            StaticFiles(directory=config.storage.root, check_dir=False),
            name="theme-media",
        )
