"""Initial schema baseline

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates the clients, keywords, daily_insights and run_history tables.
For databases created with init_db, mark this migration as complete:
    alembic stamp 001
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # clients table
    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("keyword_text", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    # keywords table
    op.create_table(
        "keywords",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    # client_keywords association table
    op.create_table(
        "client_keywords",
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("keyword_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["keyword_id"], ["keywords.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("client_id", "keyword_id"),
    )

    # daily_insights table
    op.create_table(
        "daily_insights",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("description", sa.String(2000), nullable=False),
        sa.Column("source", sa.Text(), nullable=False),
        sa.Column("industry", sa.Text(), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("scraped_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("url"),
    )
    op.create_index("idx_daily_insights_client_status", "daily_insights", ["client_id", "status"])
    op.create_index("idx_daily_insights_scraped_at", "daily_insights", ["scraped_at"])

    # run_history table
    op.create_table(
        "run_history",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("run_epoch", sa.Integer(), nullable=False),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("forced_client_id", sa.Integer(), nullable=True),
        sa.Column("articles_scraped", sa.Integer(), nullable=True, default=0),
        sa.Column("articles_saved", sa.Integer(), nullable=True, default=0),
        sa.Column("duplicates", sa.Integer(), nullable=True, default=0),
        sa.Column("error_count", sa.Integer(), nullable=True, default=0),
        sa.Column("message", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("run_history")
    op.drop_index("idx_daily_insights_scraped_at", table_name="daily_insights")
    op.drop_index("idx_daily_insights_client_status", table_name="daily_insights")
    op.drop_table("daily_insights")
    op.drop_table("client_keywords")
    op.drop_table("keywords")
    op.drop_table("clients")
