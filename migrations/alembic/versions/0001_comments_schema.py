"""Comments schema - users, comments

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates the identity and comment tables. Constraint names are stable: the
service layer maps integrity errors by name.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Enable pgcrypto extension for gen_random_uuid()
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    # ==========================================================================
    # users table
    # ==========================================================================
    op.create_table(
        "users",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("privy_user_id", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("privy_user_id", name="uq_users_privy_user_id"),
    )

    # ==========================================================================
    # comments table
    # ==========================================================================
    op.create_table(
        "comments",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), nullable=False),
        sa.Column("playlist_id", sa.Text(), nullable=False),
        sa.Column("track_uri", sa.Text(), nullable=True),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="fk_comments_user_id",
            ondelete="SET NULL",
        ),
        sa.CheckConstraint(
            "length(text) >= 1 AND length(text) <= 500",
            name="ck_comments_text_length",
        ),
    )
    op.create_index(
        "ix_comments_playlist_track_created",
        "comments",
        ["playlist_id", "track_uri", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_comments_playlist_track_created", table_name="comments")
    op.drop_table("comments")
    op.drop_table("users")
