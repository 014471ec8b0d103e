"""Persistence layer for upload sessions and upload assets."""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session

from ..db.db_models import UploadAssetModel, UploadSessionModel
from ..exceptions import handle_sqlalchemy_errors
from .uploads_models import AssetUpsert, SessionState, UploadAsset, UploadSession


class UploadSessionRepository:
    """Store upload sessions and the per-slot assets recorded against them."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def open_session(
        self, *, user_id: str, theme_id: str | None, now: datetime
    ) -> UploadSession:
        """Close every open session of ``user_id`` and insert a fresh one."""
        attempts = 2
        for attempt in range(attempts):
            try:
                return self._open_session_once(user_id=user_id, theme_id=theme_id, now=now)
            except sa_exc.IntegrityError:
                # a concurrent request opened a session between our close and insert
                if attempt == attempts - 1:
                    raise
        raise AssertionError("unreachable")

    def _open_session_once(
        self, *, user_id: str, theme_id: str | None, now: datetime
    ) -> UploadSession:
        with self._session_factory() as session:
            session.execute(
                update(UploadSessionModel)
                .where(
                    UploadSessionModel.user_id == user_id,
                    UploadSessionModel.state == SessionState.OPEN.value,
                )
                .values(state=SessionState.CLOSED.value, last_touched_at=now)
            )
            model = UploadSessionModel(
                id=str(uuid.uuid4()),
                user_id=user_id,
                theme_id=theme_id,
                state=SessionState.OPEN.value,
                created_at=now,
                last_touched_at=now,
            )
            session.add(model)
            try:
                session.commit()
            except sa_exc.IntegrityError:
                session.rollback()
                raise
            return self._to_session(model)

    def get_session(self, session_id: str) -> UploadSession | None:
        with self._session_factory() as session:
            model = session.get(UploadSessionModel, session_id)
            return self._to_session(model) if model else None

    def get_open_session(self, session_id: str, user_id: str) -> UploadSession | None:
        with self._session_factory() as session:
            model = session.execute(
                select(UploadSessionModel).where(
                    UploadSessionModel.id == session_id,
                    UploadSessionModel.user_id == user_id,
                    UploadSessionModel.state == SessionState.OPEN.value,
                )
            ).scalar_one_or_none()
            return self._to_session(model) if model else None

    def list_open_sessions(self, user_id: str) -> list[UploadSession]:
        with self._session_factory() as session:
            rows = session.execute(
                select(UploadSessionModel).where(
                    UploadSessionModel.user_id == user_id,
                    UploadSessionModel.state == SessionState.OPEN.value,
                )
            ).scalars()
            return [self._to_session(row) for row in rows]

    def list_closed_sessions(self, touched_before: datetime) -> list[UploadSession]:
        with self._session_factory() as session:
            rows = session.execute(
                select(UploadSessionModel)
                .where(
                    UploadSessionModel.state == SessionState.CLOSED.value,
                    UploadSessionModel.last_touched_at < touched_before,
                )
                .order_by(UploadSessionModel.last_touched_at)
            ).scalars()
            return [self._to_session(row) for row in rows]

    def touch(self, session_id: str, now: datetime) -> None:
        with self._session_factory() as session, handle_sqlalchemy_errors(entity="upload_session"):
            model = session.get(UploadSessionModel, session_id)
            if model is None:
                raise KeyError(f"Upload session '{session_id}' not found")
            model.last_touched_at = now
            session.commit()

    def close(self, session_id: str, now: datetime) -> bool:
        """Close the session; returns ``False`` when it was already closed."""
        with self._session_factory() as session, handle_sqlalchemy_errors(entity="upload_session"):
            result = session.execute(
                update(UploadSessionModel)
                .where(
                    UploadSessionModel.id == session_id,
                    UploadSessionModel.state == SessionState.OPEN.value,
                )
                .values(state=SessionState.CLOSED.value, last_touched_at=now)
            )
            session.commit()
            return result.rowcount > 0

    def delete_session(self, session_id: str) -> None:
        with self._session_factory() as session, handle_sqlalchemy_errors(entity="upload_session"):
            session.execute(delete(UploadAssetModel).where(UploadAssetModel.session_id == session_id))
            session.execute(delete(UploadSessionModel).where(UploadSessionModel.id == session_id))
            session.commit()

    def list_assets(self, session_id: str) -> list[UploadAsset]:
        with self._session_factory() as session:
            rows = session.execute(
                select(UploadAssetModel)
                .where(UploadAssetModel.session_id == session_id)
                .order_by(UploadAssetModel.slot_key)
            ).scalars()
            return [self._to_asset(row) for row in rows]

    def asset_urls(self, session_id: str) -> dict[str, str]:
        """``slot_key -> url`` for every asset of the session."""
        return {asset.slot_key: asset.url for asset in self.list_assets(session_id)}

    def upsert_asset(
        self, *, session_id: str, slot_key: str, url: str, now: datetime
    ) -> AssetUpsert:
        """Insert or overwrite the row keyed by ``(session_id, slot_key)``."""
        try:
            return self._upsert_asset_once(session_id=session_id, slot_key=slot_key, url=url, now=now)
        except sa_exc.IntegrityError:
            # lost an insert race on the unique constraint: the row exists now
            with handle_sqlalchemy_errors(entity="upload_asset"):
                return self._upsert_asset_once(
                    session_id=session_id, slot_key=slot_key, url=url, now=now
                )

    def _upsert_asset_once(
        self, *, session_id: str, slot_key: str, url: str, now: datetime
    ) -> AssetUpsert:
        with self._session_factory() as session:
            model = session.execute(
                select(UploadAssetModel).where(
                    UploadAssetModel.session_id == session_id,
                    UploadAssetModel.slot_key == slot_key,
                )
            ).scalar_one_or_none()
            previous_url: str | None = None
            if model is None:
                model = UploadAssetModel(
                    id=str(uuid.uuid4()),
                    session_id=session_id,
                    slot_key=slot_key,
                    url=url,
                    created_at=now,
                )
                session.add(model)
            else:
                previous_url = model.url
                model.url = url
            try:
                session.commit()
            except sa_exc.IntegrityError:
                session.rollback()
                raise
            return AssetUpsert(asset=self._to_asset(model), previous_url=previous_url)

    def delete_assets(self, session_id: str, slot_keys: Iterable[str]) -> list[UploadAsset]:
        """Delete the given slots of a session and return the removed rows."""
        keys = list(slot_keys)
        if not keys:
            return []
        with self._session_factory() as session, handle_sqlalchemy_errors(entity="upload_asset"):
            rows = list(
                session.execute(
                    select(UploadAssetModel).where(
                        UploadAssetModel.session_id == session_id,
                        UploadAssetModel.slot_key.in_(keys),
                    )
                ).scalars()
            )
            removed = [self._to_asset(row) for row in rows]
            for row in rows:
                session.delete(row)
            session.commit()
            return removed

    @staticmethod
    def _to_session(model: UploadSessionModel) -> UploadSession:
        return UploadSession(
            id=model.id,
            user_id=model.user_id,
            theme_id=model.theme_id,
            state=SessionState(model.state),
            created_at=model.created_at,
            last_touched_at=model.last_touched_at,
        )

    @staticmethod
    def _to_asset(model: UploadAssetModel) -> UploadAsset:
        return UploadAsset(
            id=model.id,
            session_id=model.session_id,
            slot_key=model.slot_key,
            url=model.url,
            created_at=model.created_at,
        )
