"""Application configuration builder."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .db.db_init import init_db
from .exceptions import StorageMisconfiguredError


@dataclass(slots=True)
class StoragePaths:
    """Physical storage root and the public URL prefix it is served under."""

    root: Path
    public_base: str

    @property
    def themes(self) -> Path:
        return self.root / "themes"


@dataclass(slots=True)
class UploadLimits:
    max_bytes: int
    max_dimension: int
    webp_quality: int
    chunk_size_bytes: int


@dataclass(slots=True)
class AppConfig:
    storage: StoragePaths
    upload_limits: UploadLimits
    database_url: str
    engine: Engine
    session_factory: sessionmaker[Session]
    jwt_signing_key: str
    staging_retention_hours: int


def build_storage_paths(root: str | None, public_base: str | None) -> StoragePaths:
    """Validate storage settings; blank values are fatal."""
    root_value = (root or "").strip()
    base_value = (public_base or "").strip().rstrip("/")
    if not root_value:
        raise StorageMisconfiguredError("THEME_STORAGE_ROOT is not configured")
    if not base_value:
        raise StorageMisconfiguredError("THEME_PUBLIC_BASE_PATH is not configured")
    return StoragePaths(root=Path(root_value), public_base=base_value)


def _ensure_storage(paths: StoragePaths) -> None:
    paths.root.mkdir(parents=True, exist_ok=True)
    paths.themes.mkdir(parents=True, exist_ok=True)


def load_config() -> AppConfig:
    """Load configuration from environment (SQLite by default)."""
    storage = build_storage_paths(
        os.getenv("THEME_STORAGE_ROOT", "media"),
        os.getenv("THEME_PUBLIC_BASE_PATH", "/media"),
    )
    _ensure_storage(storage)

    upload_limits = UploadLimits(
        max_bytes=int(os.getenv("THEME_UPLOAD_MAX_BYTES", 10 * 1024 * 1024)),
        max_dimension=int(os.getenv("THEME_UPLOAD_MAX_DIMENSION", 1200)),
        webp_quality=int(os.getenv("THEME_UPLOAD_WEBP_QUALITY", 50)),
        chunk_size_bytes=int(os.getenv("THEME_UPLOAD_CHUNK_SIZE_BYTES", 1 * 1024 * 1024)),
    )

    database_url = os.getenv("DATABASE_URL", "sqlite:///themedeck.db")
    engine = create_engine(database_url, future=True)
    session_factory: sessionmaker[Session] = sessionmaker(bind=engine, expire_on_commit=False)

    init_db(engine)

    return AppConfig(
        storage=storage,
        upload_limits=upload_limits,
        database_url=database_url,
        engine=engine,
        session_factory=session_factory,
        jwt_signing_key=os.getenv("JWT_SIGNING_KEY", ""),
        staging_retention_hours=int(os.getenv("STAGING_RETENTION_HOURS", 48)),
    )
