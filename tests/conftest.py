from __future__ import annotations

import os
import tempfile
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

_RUNTIME_DIR = Path(tempfile.mkdtemp(prefix="themedeck-tests-"))

os.environ.setdefault("JWT_SIGNING_KEY", "test-signing-key-with-enough-entropy-0123456789")
os.environ.setdefault("THEME_STORAGE_ROOT", str(_RUNTIME_DIR / "media"))
os.environ.setdefault("THEME_PUBLIC_BASE_PATH", "/media")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_RUNTIME_DIR / 'themedeck.db'}")

from src.themedeck.config import AppConfig, UploadLimits, build_storage_paths  # noqa: E402
from src.themedeck.db.db_init import init_db  # noqa: E402
from tests.helpers.services import ServiceBundle, build_services  # noqa: E402


@pytest.fixture
def storage_paths(tmp_path: Path):
    paths = build_storage_paths(str(tmp_path / "media"), "/media")
    paths.themes.mkdir(parents=True, exist_ok=True)
    return paths


@pytest.fixture
def session_factory(tmp_path: Path):
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}", future=True)
    init_db(engine)
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    yield factory
    engine.dispose()


@pytest.fixture
def services(storage_paths, session_factory) -> ServiceBundle:
    return build_services(storage_paths, session_factory)


@pytest.fixture
def app_config(tmp_path: Path, storage_paths) -> AppConfig:
    database_url = f"sqlite:///{tmp_path / 'api.db'}"
    engine = create_engine(database_url, future=True)
    init_db(engine)
    return AppConfig(
        storage=storage_paths,
        upload_limits=UploadLimits(
            max_bytes=2 * 1024 * 1024,
            max_dimension=1200,
            webp_quality=50,
            chunk_size_bytes=64 * 1024,
        ),
        database_url=database_url,
        engine=engine,
        session_factory=sessionmaker(bind=engine, expire_on_commit=False),
        jwt_signing_key=os.environ["JWT_SIGNING_KEY"],
        staging_retention_hours=48,
    )


@pytest.fixture
def api_client(app_config: AppConfig):
    from fastapi.testclient import TestClient

    from src.themedeck.main import create_app

    app = create_app(app_config)
    with TestClient(app) as client:
        yield client
    app_config.engine.dispose()


@pytest.fixture
def auth_headers(api_client):
    def _headers(user_id: str = "teacher-1", role: str = "teacher") -> dict[str, str]:
        token = api_client.app.state.auth_service.issue_token(user_id, role=role)
        return {"Authorization": f"Bearer {token}"}

    return _headers
