"""Upload session lifecycle: open, look up, touch, close."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from .uploads_errors import SessionNotFoundError
from .uploads_models import SessionState, UploadSession
from .uploads_repository import UploadSessionRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class UploadSessionService:
    """Keeps at most one open upload session per user."""

    repo: UploadSessionRepository
    clock: Callable[[], datetime] = field(default=datetime.utcnow)
    log: logging.Logger = field(default_factory=lambda: logger)

    def create_session(self, user_id: str, theme_id: str | None = None) -> UploadSession:
        """Open a fresh session, closing any session the user still has open.

        Files staged by the closed sessions stay on disk until the staging
        cleanup job removes them.
        """
        previous = self.repo.list_open_sessions(user_id)
        session = self.repo.open_session(user_id=user_id, theme_id=theme_id, now=self.clock())
        self.log.info(
            "uploads.session.created",
            extra={
                "session_id": session.id,
                "user_id": user_id,
                "theme_id": theme_id,
                "closed_sessions": [item.id for item in previous],
            },
        )
        return session

    def require_open(self, session_id: str, user_id: str) -> UploadSession:
        session = self.repo.get_open_session(session_id, user_id)
        if session is None:
            self.log.warning(
                "uploads.session.not_found",
                extra={"session_id": session_id, "user_id": user_id},
            )
            raise SessionNotFoundError(session_id)
        return session

    def touch(self, session: UploadSession) -> None:
        now = self.clock()
        self.repo.touch(session.id, now)
        session.last_touched_at = now

    def close(self, session: UploadSession) -> None:
        """Close ``session``; closing an already closed session does nothing."""
        closed_now = self.repo.close(session.id, self.clock())
        session.state = SessionState.CLOSED
        if closed_now:
            self.log.info("uploads.session.closed", extra={"session_id": session.id})
