"""SQLAlchemy ORM models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base declarative class."""


class UploadSessionModel(Base):
    __tablename__ = "theme_upload_session"
    __table_args__ = (
        # at most one open session per user
        Index(
            "ux_theme_upload_session_open_per_user",
            "user_id",
            unique=True,
            sqlite_where=text("state = 'open'"),
            postgresql_where=text("state = 'open'"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    theme_id: Mapped[str | None] = mapped_column(String(36))
    state: Mapped[str] = mapped_column(String(16), nullable=False, default="open")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    last_touched_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    assets: Mapped[list["UploadAssetModel"]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
    )


class UploadAssetModel(Base):
    __tablename__ = "theme_upload_asset"
    __table_args__ = (
        UniqueConstraint("session_id", "slot_key", name="uq_theme_upload_asset_session_slot"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    session_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("theme_upload_session.id", ondelete="CASCADE"), nullable=False, index=True
    )
    slot_key: Mapped[str] = mapped_column(String(200), nullable=False)
    url: Mapped[str] = mapped_column(String(1024), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    session: Mapped[UploadSessionModel] = relationship(back_populates="assets")


class ThemeModel(Base):
    __tablename__ = "theme"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    creator_user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    resume: Mapped[str | None] = mapped_column(String(100))
    recommendation: Mapped[str | None] = mapped_column(String(50))
    image: Mapped[str] = mapped_column(String(1024), nullable=False)
    ready_to_play: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    cards: Mapped[list["EventCardModel"]] = relationship(
        back_populates="theme",
        cascade="all, delete-orphan",
        order_by="EventCardModel.order_index",
    )


class EventCardModel(Base):
    __tablename__ = "event_card"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    theme_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("theme.id", ondelete="CASCADE"), nullable=False, index=True
    )
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    era: Mapped[str] = mapped_column(String(2), nullable=False)
    caption: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    image_quiz_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    text_quiz_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    true_false_quiz_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    correlation_quiz_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    theme: Mapped[ThemeModel] = relationship(back_populates="cards")
