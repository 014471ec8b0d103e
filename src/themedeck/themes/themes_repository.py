"""Theme repository backed by SQLAlchemy."""

from __future__ import annotations

import json
import uuid
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import delete, update
from sqlalchemy.orm import Session, selectinload

from ..db.db_models import EventCardModel, ThemeModel, UploadAssetModel, UploadSessionModel
from ..exceptions import handle_sqlalchemy_errors
from ..uploads.uploads_models import SessionState
from .themes_models import EventCard, Theme


class ThemeRepository:
    """Persist themes together with their cards.

    Committing a theme also closes the upload session it was assembled in and
    drops that session's asset rows, in the same transaction.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def exists(self, theme_id: str) -> bool:
        with self._session_factory() as session:
            return session.get(ThemeModel, theme_id) is not None

    def existing_ids(self, theme_ids: Iterable[str]) -> set[str]:
        ids = list(theme_ids)
        if not ids:
            return set()
        with self._session_factory() as session:
            rows = session.query(ThemeModel.id).filter(ThemeModel.id.in_(ids)).all()
            return {row[0] for row in rows}

    def get_theme(self, theme_id: str) -> Theme:
        with self._session_factory() as session:
            row = (
                session.query(ThemeModel)
                .options(selectinload(ThemeModel.cards))
                .filter(ThemeModel.id == theme_id)
                .one_or_none()
            )
            if row is None:
                raise KeyError(f"Theme '{theme_id}' not found")
            return self._to_domain(row)

    def list_by_creator(self, user_id: str) -> Sequence[Theme]:
        with self._session_factory() as session:
            rows = (
                session.query(ThemeModel)
                .options(selectinload(ThemeModel.cards))
                .filter(ThemeModel.creator_user_id == user_id)
                .order_by(ThemeModel.updated_at.desc())
                .all()
            )
            return [self._to_domain(row) for row in rows]

    def list_ready(self, *, offset: int, limit: int) -> tuple[list[Theme], int]:
        """Ready-to-play themes, newest first, with the total count before paging."""
        with self._session_factory() as session:
            query = session.query(ThemeModel).filter(ThemeModel.ready_to_play.is_(True))
            total = query.count()
            rows = (
                query.options(selectinload(ThemeModel.cards))
                .order_by(ThemeModel.created_at.desc(), ThemeModel.id)
                .offset(offset)
                .limit(limit)
                .all()
            )
            return [self._to_domain(row) for row in rows], total

    def create_from_session(self, theme: Theme, *, session_id: str, now: datetime) -> Theme:
        with self._session_factory() as session, handle_sqlalchemy_errors(entity="theme"):
            row = ThemeModel(
                id=theme.id,
                creator_user_id=theme.creator_user_id,
                name=theme.name,
                resume=theme.resume,
                recommendation=theme.recommendation,
                image=theme.image,
                ready_to_play=theme.ready_to_play,
                created_at=now,
                updated_at=now,
            )
            row.cards = [self._card_row(card, now) for card in theme.cards]
            session.add(row)
            self._finish_session(session, session_id, now)
            session.commit()
            session.refresh(row)
            return self._to_domain(row)

    def update_theme(self, theme: Theme, *, session_id: str | None, now: datetime) -> Theme:
        """Overwrite fields and replace every card of ``theme``."""
        with self._session_factory() as session, handle_sqlalchemy_errors(entity="theme"):
            row = session.get(ThemeModel, theme.id)
            if row is None:
                raise KeyError(f"Theme '{theme.id}' not found")
            row.name = theme.name
            row.resume = theme.resume
            row.recommendation = theme.recommendation
            row.image = theme.image
            row.ready_to_play = theme.ready_to_play
            row.updated_at = now
            row.cards.clear()
            session.flush()
            row.cards.extend(self._card_row(card, now) for card in theme.cards)
            if session_id is not None:
                self._finish_session(session, session_id, now)
            session.commit()
            session.refresh(row)
            return self._to_domain(row)

    def delete_theme(self, theme_id: str) -> bool:
        with self._session_factory() as session, handle_sqlalchemy_errors(entity="theme"):
            row = session.get(ThemeModel, theme_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True

    @staticmethod
    def _finish_session(session: Session, session_id: str, now: datetime) -> None:
        session.execute(delete(UploadAssetModel).where(UploadAssetModel.session_id == session_id))
        session.execute(
            update(UploadSessionModel)
            .where(UploadSessionModel.id == session_id)
            .values(state=SessionState.CLOSED.value, last_touched_at=now)
        )

    @staticmethod
    def _card_row(card: EventCard, now: datetime) -> EventCardModel:
        return EventCardModel(
            id=str(uuid.uuid4()),
            order_index=card.order_index,
            year=card.year,
            era=card.era,
            caption=card.caption,
            image_url=card.image_url,
            image_quiz_json=json.dumps(card.image_quiz),
            text_quiz_json=json.dumps(card.text_quiz),
            true_false_quiz_json=json.dumps(card.true_false_quiz),
            correlation_quiz_json=json.dumps(card.correlation_quiz),
            created_at=now,
        )

    @staticmethod
    def _load_json(raw: str | None) -> dict[str, Any]:
        try:
            value = json.loads(raw) if raw else {}
        except json.JSONDecodeError:
            return {}
        return value if isinstance(value, dict) else {}

    @classmethod
    def _to_domain(cls, model: ThemeModel) -> Theme:
        return Theme(
            id=model.id,
            creator_user_id=model.creator_user_id,
            name=model.name,
            image=model.image,
            resume=model.resume,
            recommendation=model.recommendation,
            cards=[
                EventCard(
                    order_index=card.order_index,
                    year=card.year,
                    era=card.era,
                    caption=card.caption,
                    image_url=card.image_url,
                    image_quiz=cls._load_json(card.image_quiz_json),
                    text_quiz=cls._load_json(card.text_quiz_json),
                    true_false_quiz=cls._load_json(card.true_false_quiz_json),
                    correlation_quiz=cls._load_json(card.correlation_quiz_json),
                )
                for card in model.cards
            ],
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
