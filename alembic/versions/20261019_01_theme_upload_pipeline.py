"""Theme, event card and upload staging tables."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20261019_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "theme",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("creator_user_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("resume", sa.String(length=100)),
        sa.Column("recommendation", sa.String(length=50)),
        sa.Column("image", sa.String(length=1024), nullable=False),
        sa.Column(
            "ready_to_play", sa.Boolean(), nullable=False, server_default=sa.text("FALSE")
        ),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("ix_theme_creator_user_id", "theme", ["creator_user_id"])

    op.create_table(
        "event_card",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "theme_id",
            sa.String(length=36),
            sa.ForeignKey("theme.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("order_index", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("era", sa.String(length=2), nullable=False),
        sa.Column("caption", sa.Text(), nullable=False),
        sa.Column("image_url", sa.String(length=1024), nullable=False),
        sa.Column("image_quiz_json", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("text_quiz_json", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("true_false_quiz_json", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("correlation_quiz_json", sa.Text(), nullable=False, server_default="{}"),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("ix_event_card_theme_id", "event_card", ["theme_id"])

    op.create_table(
        "theme_upload_session",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("theme_id", sa.String(length=36)),
        sa.Column("state", sa.String(length=16), nullable=False, server_default="open"),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "last_touched_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("ix_theme_upload_session_user_id", "theme_upload_session", ["user_id"])
    op.create_index(
        "ux_theme_upload_session_open_per_user",
        "theme_upload_session",
        ["user_id"],
        unique=True,
        sqlite_where=sa.text("state = 'open'"),
        postgresql_where=sa.text("state = 'open'"),
    )

    op.create_table(
        "theme_upload_asset",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "session_id",
            sa.String(length=36),
            sa.ForeignKey("theme_upload_session.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("slot_key", sa.String(length=200), nullable=False),
        sa.Column("url", sa.String(length=1024), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.UniqueConstraint("session_id", "slot_key", name="uq_theme_upload_asset_session_slot"),
    )
    op.create_index("ix_theme_upload_asset_session_id", "theme_upload_asset", ["session_id"])


def downgrade() -> None:
    op.drop_index("ix_theme_upload_asset_session_id", table_name="theme_upload_asset")
    op.drop_table("theme_upload_asset")
    op.drop_index("ux_theme_upload_session_open_per_user", table_name="theme_upload_session")
    op.drop_index("ix_theme_upload_session_user_id", table_name="theme_upload_session")
    op.drop_table("theme_upload_session")
    op.drop_index("ix_event_card_theme_id", table_name="event_card")
    op.drop_table("event_card")
    op.drop_index("ix_theme_creator_user_id", table_name="theme")
    op.drop_table("theme")
