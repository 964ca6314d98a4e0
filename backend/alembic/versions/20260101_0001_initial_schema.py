"""initial schema

Revision ID: 20260101_0001
Revises:
Create Date: 2026-01-01
"""

from alembic import op
import sqlalchemy as sa


revision = "20260101_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Durable cache tier
    op.create_table(
        "cache",
        sa.Column("key", sa.String(length=512), primary_key=True),
        sa.Column("data", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_cache_expires_at", "cache", ["expires_at"])

    op.create_table(
        "pull_requests",
        sa.Column("id", sa.String(length=512), primary_key=True),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=1024)),
        sa.Column("branch_name", sa.String(length=255)),
        sa.Column("base_branch", sa.String(length=255)),
        sa.Column("repository_full_name", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=32)),
        sa.Column("description", sa.Text()),
        sa.Column("author", sa.String(length=255)),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("last_updated", sa.DateTime()),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_index(
        "ix_pull_requests_repository_full_name", "pull_requests", ["repository_full_name"]
    )

    op.create_table(
        "issues",
        sa.Column("id", sa.String(length=512), primary_key=True),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=1024)),
        sa.Column("description", sa.Text()),
        sa.Column("state", sa.String(length=32)),
        sa.Column("repository_full_name", sa.String(length=255), nullable=False),
        sa.Column("author", sa.String(length=255)),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime()),
        sa.Column("updated_at", sa.DateTime()),
    )
    op.create_index("ix_issues_repository_full_name", "issues", ["repository_full_name"])

    # Append-only audit trail
    op.create_table(
        "webhook_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("delivery_id", sa.String(length=64)),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("action", sa.String(length=64)),
        sa.Column("repository_full_name", sa.String(length=255)),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("received_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_webhook_logs_delivery_id", "webhook_logs", ["delivery_id"])
    op.create_index("ix_webhook_logs_event_type", "webhook_logs", ["event_type"])
    op.create_index(
        "ix_webhook_logs_repository_full_name", "webhook_logs", ["repository_full_name"]
    )


def downgrade() -> None:
    op.drop_table("webhook_logs")
    op.drop_table("issues")
    op.drop_table("pull_requests")
    op.drop_table("cache")
