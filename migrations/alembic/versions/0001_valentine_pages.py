"""Valentine pages and acceptance events

Revision ID: 0001
Revises:
Create Date: 2026-02-01

Creates valentine_pages and yes_events. uq_yes_events_page_id is the only
guard against a page being accepted twice.
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
    # valentine_pages table
    # ==========================================================================
    op.create_table(
        "valentine_pages",
        sa.Column("id", sa.String(10), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column(
            "begging_messages",
            sa.JSON(),
            server_default=sa.text("'[]'::json"),
            nullable=False,
        ),
        sa.Column("final_message", sa.Text(), nullable=False),
        sa.Column("social_label", sa.Text(), nullable=True),
        sa.Column("social_link", sa.Text(), nullable=True),
        sa.Column("sender_name", sa.Text(), nullable=True),
        sa.Column("creator_email", sa.Text(), nullable=True),
        sa.Column("theme", sa.Text(), server_default="pink", nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    # ==========================================================================
    # yes_events table
    # ==========================================================================
    op.create_table(
        "yes_events",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("page_id", sa.String(10), nullable=False),
        sa.Column(
            "clicked_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("screenshot_url", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["page_id"],
            ["valentine_pages.id"],
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("page_id", name="uq_yes_events_page_id"),
    )


def downgrade() -> None:
    op.drop_table("yes_events")
    op.drop_table("valentine_pages")
