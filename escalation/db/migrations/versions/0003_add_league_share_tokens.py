"""add private leagues and share tokens

Revision ID: 0003_add_league_share_tokens
Revises: 0002_add_action_logs
Create Date: 2026-10-08 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

revision = "0003_add_league_share_tokens"
down_revision = "0002_add_action_logs"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "leagues",
        sa.Column("is_private", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.add_column("leagues", sa.Column("share_token", sa.String(length=64), nullable=True))
    op.create_index("ix_leagues_share_token", "leagues", ["share_token"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_leagues_share_token", table_name="leagues")
    op.drop_column("leagues", "share_token")
    op.drop_column("leagues", "is_private")
