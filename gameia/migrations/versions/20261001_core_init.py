"""Core event ledger and transactional outbox."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision = "20261001_core_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    conn = op.get_bind()
    inspector = inspect(conn)

    def _has_table(name: str) -> bool:
        return name in inspector.get_table_names()

    def _has_index(table: str, name: str) -> bool:
        return any(ix["name"] == name for ix in inspector.get_indexes(table))

    def _ensure_index(table: str, name: str, columns: list[str]) -> None:
        if not _has_index(table, name):
            op.create_index(name, table, columns)

    if not _has_table("core_event"):
        op.create_table(
            "core_event",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.String(length=64), nullable=True),
            sa.Column("organization_id", sa.String(length=64), nullable=True),
            sa.Column("event_type", sa.String(length=128), nullable=False),
            sa.Column("xp_earned", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("coins_earned", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("payload", sa.JSON(), nullable=False),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        )
    _ensure_index("core_event", "ix_core_event_user_id", ["user_id"])
    _ensure_index("core_event", "ix_core_event_organization_id", ["organization_id"])
    _ensure_index("core_event", "ix_core_event_event_type", ["event_type"])
    _ensure_index("core_event", "ix_core_event_created_at", ["created_at"])
    _ensure_index("core_event", "ix_core_event_user_created_at", ["user_id", "created_at"])
    _ensure_index("core_event", "ix_core_event_user_event_type", ["user_id", "event_type"])

    if not _has_table("platform_outbox"):
        op.create_table(
            "platform_outbox",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.String(length=64), nullable=True),
            sa.Column("organization_id", sa.String(length=64), nullable=True),
            sa.Column("event_type", sa.String(length=128), nullable=False),
            sa.Column("payload", sa.JSON(), nullable=False),
            sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
            sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("available_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
            sa.Column("sent_at", sa.DateTime(), nullable=True),
            sa.Column("last_error", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        )
    _ensure_index("platform_outbox", "ix_platform_outbox_user_id", ["user_id"])
    _ensure_index("platform_outbox", "ix_platform_outbox_event_type", ["event_type"])
    _ensure_index(
        "platform_outbox", "ix_platform_outbox_status_available_at", ["status", "available_at"]
    )
    _ensure_index(
        "platform_outbox", "ix_platform_outbox_user_available_at", ["user_id", "available_at"]
    )


def downgrade():
    op.drop_table("platform_outbox")
    op.drop_table("core_event")
