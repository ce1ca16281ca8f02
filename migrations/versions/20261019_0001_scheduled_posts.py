"""scheduled posts store

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "scheduled_posts",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("platform", sa.String(length=16), nullable=False),
        sa.Column("post_type", sa.String(length=16), nullable=False, server_default="POST"),
        sa.Column("media_url", sa.Text(), nullable=True),
        sa.Column("media_urls_json", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("caption", sa.Text(), nullable=False, server_default=""),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="scheduled"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("instagram_container_id", sa.String(length=64), nullable=True),
        sa.Column("fb_post_id", sa.String(length=128), nullable=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "platform IN ('instagram', 'facebook', 'linkedin', 'twitter', 'tiktok')",
            name="ck_scheduled_posts_platform",
        ),
        sa.CheckConstraint(
            "post_type IN ('POST', 'REEL', 'STORY', 'CAROUSEL')",
            name="ck_scheduled_posts_post_type",
        ),
        sa.CheckConstraint(
            "status IN ('scheduled', 'published', 'failed')",
            name="ck_scheduled_posts_status",
        ),
    )
    op.create_index(
        "ix_scheduled_posts_status_scheduled_at",
        "scheduled_posts",
        ["status", "scheduled_at"],
        unique=False,
    )
    op.create_index(
        "ix_scheduled_posts_user_created_at",
        "scheduled_posts",
        ["user_id", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_scheduled_posts_user_created_at", table_name="scheduled_posts")
    op.drop_index("ix_scheduled_posts_status_scheduled_at", table_name="scheduled_posts")
    op.drop_table("scheduled_posts")
